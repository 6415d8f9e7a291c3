"""Tests for expression text building, bindings and result formatting."""

import logging

import numpy as np
import pytest

from uservars import LiteralValue, ReferenceValue, Sentinel, SimpleEvalParser
from uservars._eval_engine import ResolvedOperand, build_expression_text, evaluate_expression, format_result
from uservars._eval_engine._expression import to_binding
from uservars._models import Value

VALUES = {
    "five": "5",
    "nums": ["1", "2", "3"],
    "func": "f(x) = x * 10",
    "funcs": ["g(x) = x + 1", "h(x) = g(x) * 2"],
    "word": "hello",
}


def resolver(value: Value | list[Value]) -> ResolvedOperand:
    """Literals resolve to themselves, references look up VALUES."""
    if isinstance(value, ReferenceValue):
        return ResolvedOperand(value=VALUES.get(value.value, Sentinel.MISSING_REFERENCE), reference=value.value)
    assert isinstance(value, LiteralValue)
    return ResolvedOperand(value=value.value)


def run(expression: Value, bindings: dict[str, Value] | None = None, functions: list[Value] | None = None):
    return evaluate_expression(
        expression,
        bindings or {},
        functions or [],
        resolve=resolver,
        parser=SimpleEvalParser(),
    )


def lit(text: str) -> LiteralValue:
    return LiteralValue(value=text)


def ref(path: str) -> ReferenceValue:
    return ReferenceValue(value=path)


class TestHelpers:
    def test_build_expression_text(self) -> None:
        assert build_expression_text(["f(x) = x * 2"], "f(3) + 1") == "f(x) = x * 2; f(3) + 1"
        assert build_expression_text([], "1") == "1"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("5", 5),
            ("2.5", 2.5),
            ("abc", "abc"),
        ],
    )
    def test_to_binding(self, value: object, expected: object) -> None:
        assert to_binding(value) == expected  # type: ignore[arg-type]

    def test_numeric_list_becomes_array(self) -> None:
        binding = to_binding(["1", "2.5"])

        assert isinstance(binding, np.ndarray)
        assert binding.tolist() == [1.0, 2.5]

    def test_list_with_text_stays_a_list(self) -> None:
        assert to_binding(["1", "a"]) == [1, "a"]

    @pytest.mark.parametrize(
        ("result", "expected"),
        [
            (11, "11"),
            (3.0, "3"),
            (2.5, "2.5"),
            (True, "true"),
            (False, "false"),
            ([1, 2.0], ["1", "2"]),
            ((1, 2), ["1", "2"]),
            ("a, b", ["a", "b"]),
            (np.array([2, 4]), ["2", "4"]),
            (np.array([0.5, 1.0]), ["0.5", "1"]),
            (np.int64(6), "6"),
            (np.bool_(True), "true"),
        ],
    )
    def test_format_result(self, result: object, expected: object) -> None:
        assert format_result(result) == expected


class TestEvaluateExpression:
    def test_function_and_local_binding(self) -> None:
        assert run(lit("f(x)+1"), {"x": lit("5")}, [lit("f(x)=x*2")]) == "11"

    def test_referenced_bindings(self) -> None:
        assert run(lit("x * 2"), {"x": ref("five")}) == "10"

    def test_referenced_function_definition(self) -> None:
        result = run(lit("f(x) + (12 / y)"), {"x": lit("100"), "y": lit("4")}, [ref("func")])
        assert result == "1003"

    def test_referenced_list_of_functions_is_flattened(self) -> None:
        assert run(lit("h(1)"), functions=[ref("funcs")]) == "4"

    def test_list_binding(self) -> None:
        assert run(lit("sum(v)"), {"v": ref("nums")}) == "6"

    def test_referenced_expression_text(self) -> None:
        assert run(ref("func_text"), {}) == "[MISSING func_text]"

    def test_main_expression_resolving_to_list(self) -> None:
        assert run(ref("nums")) == "[LIST nums]"

    def test_unused_bindings_are_not_resolved(self) -> None:
        assert run(lit("1 + 1"), {"unused": ref("nowhere")}) == "2"

    def test_missing_reference_in_binding(self) -> None:
        assert run(lit("x + 1"), {"x": ref("nowhere")}) == "[MISSING nowhere]"

    def test_missing_reference_in_functions(self) -> None:
        assert run(lit("1"), functions=[ref("nowhere")]) == "[MISSING nowhere]"

    def test_free_variable_without_binding(self) -> None:
        assert run(lit("x + y"), {"x": lit("1")}) == "[MISSING y]"

    def test_constant_without_binding(self) -> None:
        assert run(lit("pi > 3")) == "true"

    @pytest.mark.parametrize(
        ("text", "bindings", "expected"),
        [
            ("e * 2", {"e": lit("5")}, "10"),
            ("pi + 1", {"pi": lit("1")}, "2"),
            ("e + 1", {"e": ref("nums")}, ["2", "3", "4"]),
        ],
    )
    def test_binding_replaces_constant(self, text: str, bindings: dict[str, Value], expected: object) -> None:
        assert run(lit(text), bindings) == expected

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("x * 2", ["2", "4", "6"]),
            ("x + 1", ["2", "3", "4"]),
            ("x ^ 2", ["1", "4", "9"]),
            ("x * x", ["1", "4", "9"]),
            ("x > 1", ["false", "true", "true"]),
            ("sum(x * 2)", "12"),
        ],
    )
    def test_list_binding_is_element_wise(self, text: str, expected: object) -> None:
        assert run(lit(text), {"x": ref("nums")}) == expected

    def test_list_result(self) -> None:
        assert run(lit("[v * 2 for v in values]"), {"values": ref("nums")}) == ["2", "4", "6"]

    def test_syntax_error(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="uservars"):
            result = run(lit("1 +"))

        assert result == Sentinel.EXPRESSION_ERROR
        assert any("Cannot parse expression" in r.message for r in caplog.records)

    def test_evaluation_error(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="uservars"):
            result = run(lit("x + 1"), {"x": ref("word")})

        assert result == Sentinel.EXPRESSION_ERROR
        assert any("Cannot evaluate expression" in r.message for r in caplog.records)

    def test_sentinel_binding_propagates(self) -> None:
        def cyclic(value: Value | list[Value]) -> ResolvedOperand:
            if isinstance(value, ReferenceValue):
                return ResolvedOperand(value=Sentinel.CIRCULAR_DEPENDENCY, reference=value.value)
            return resolver(value)

        result = evaluate_expression(
            lit("x"),
            {"x": ref("a")},
            [],
            resolve=cyclic,
            parser=SimpleEvalParser(),
        )

        assert result is Sentinel.CIRCULAR_DEPENDENCY
