"""Cache of evaluated results with dependency-driven invalidation."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ._enums import ResultForm
from ._graph import DependencyGraph

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ResultCache:
    """Last computed result of each path, per result form.

    A table has two cached forms: its plain output and its trace. Both are
    dropped together when the path goes stale.
    """

    _entries: dict[str, dict[ResultForm, Any]] = field(default_factory=dict)

    def get(self, path: str, form: ResultForm = ResultForm.PLAIN) -> Any | None:
        """Get a cached result, or None on a miss."""
        forms = self._entries.get(path)
        if forms is None:
            return None
        return forms.get(form)

    def put(self, path: str, form: ResultForm, value: Any) -> None:
        self._entries.setdefault(path, {})[form] = value

    def has_any(self, path: str) -> bool:
        """Check whether any form of the path is cached."""
        return bool(self._entries.get(path))

    def discard(self, path: str) -> bool:
        """Drop every cached form of a path. Returns True if something was dropped."""
        return self._entries.pop(path, None) is not None

    def invalidate(self, paths: Iterable[str], graph: DependencyGraph[str]) -> frozenset[str]:
        """Mark paths and everything that transitively read them as stale.

        Stale paths are recomputed on their next read.

        Args:
            paths: Paths whose stored declaration changed.
            graph: Graph of recorded reads.

        Returns:
            All paths considered stale, whether or not they had a cached result.

        """
        stale: set[str] = set()
        for path in paths:
            stale.add(path)
            stale |= graph.descendants(path)

        dropped = sum(self.discard(path) for path in stale)
        logger.debug("Invalidated %d paths, dropped %d cached results", len(stale), dropped)
        return frozenset(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of paths with a cached result."""
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries
