"""Tests for the result cache."""

from uservars import DependencyGraph, ResultCache
from uservars._enums import ResultForm


class TestResultCache:
    def test_miss_returns_none(self) -> None:
        cache = ResultCache()
        assert cache.get("a") is None
        assert not cache.has_any("a")

    def test_forms_are_cached_separately(self) -> None:
        cache = ResultCache()
        cache.put("t", ResultForm.PLAIN, "yes")

        assert cache.get("t") == "yes"
        assert cache.get("t", ResultForm.TRACE) is None
        assert cache.has_any("t")
        assert "t" in cache
        assert len(cache) == 1

    def test_discard_drops_every_form(self) -> None:
        cache = ResultCache()
        cache.put("t", ResultForm.PLAIN, "yes")
        cache.put("t", ResultForm.TRACE, object())

        assert cache.discard("t")
        assert not cache.discard("t")
        assert "t" not in cache


class TestInvalidate:
    def test_drops_transitive_dependents(self) -> None:
        # nice is read by niceVar, which is read by list
        graph = DependencyGraph.from_edges([("nice", "niceVar"), ("niceVar", "list")])
        cache = ResultCache()
        for path in ("nice", "niceVar", "list", "other"):
            cache.put(path, ResultForm.PLAIN, "x")

        stale = cache.invalidate(["nice"], graph)

        assert stale == frozenset({"nice", "niceVar", "list"})
        assert "other" in cache
        assert len(cache) == 1

    def test_reports_paths_without_cached_results(self) -> None:
        graph = DependencyGraph.from_edges([("missing", "a")])
        cache = ResultCache()

        assert cache.invalidate(["missing"], graph) == frozenset({"missing", "a"})

    def test_clear(self) -> None:
        cache = ResultCache()
        cache.put("a", ResultForm.PLAIN, "1")
        cache.clear()
        assert len(cache) == 0
