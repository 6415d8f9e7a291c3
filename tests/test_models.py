"""Tests for decoding variable declarations."""

import pytest

from uservars import (
    BasicVariable,
    Comparison,
    ExpressionVariable,
    InlineExpression,
    InvalidVariableError,
    ListVariable,
    LiteralValue,
    Priority,
    ReferenceValue,
    TableVariable,
    UnknownVariable,
    parse_variable,
    parse_variables_json,
)


class TestBasicDeclarations:
    def test_bare_string_is_literal(self) -> None:
        var = parse_variable({"name": "nice", "varType": "basic", "value": "69"})

        assert isinstance(var, BasicVariable)
        assert var.value == LiteralValue(value="69")
        assert var.scope == "global"

    def test_basic_type_literal(self) -> None:
        var = parse_variable(
            {"name": "nice", "scope": "global", "value": "69", "varType": "basic", "basicType": "literal"},
        )

        assert var.value == LiteralValue(value="69")

    def test_basic_type_var_makes_bare_string_a_reference(self) -> None:
        var = parse_variable({"name": "niceVar", "value": "nice", "basicType": "var", "varType": "basic"})

        assert var.value == ReferenceValue(value="nice")

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ({"value": "x", "varType": "ref"}, ReferenceValue(value="x")),
            ({"value": "x", "varType": "reference"}, ReferenceValue(value="x")),
            ({"value": "x", "varType": "literal"}, LiteralValue(value="x")),
            ({"value": "x", "reference": True}, ReferenceValue(value="x")),
            ({"value": "x", "reference": False}, LiteralValue(value="x")),
            ({"value": "x"}, ReferenceValue(value="x")),
        ],
    )
    def test_value_shapes(self, raw: dict, expected: object) -> None:
        var = parse_variable({"name": "v", "varType": "basic", "value": raw})

        assert var.value == expected

    def test_inline_expression_value(self) -> None:
        var = parse_variable(
            {
                "name": "v",
                "varType": "basic",
                "value": {"value": "a + 1", "varType": "expression", "vars": {"a": "2"}},
            },
        )

        assert isinstance(var.value, InlineExpression)
        assert var.value.vars == {"a": LiteralValue(value="2")}
        assert var.value.functions == []

    def test_accepts_snake_case_field_names(self) -> None:
        var = parse_variable({"name": "v", "var_type": "basic", "basic_type": "var", "value": "x"})

        assert var.value == ReferenceValue(value="x")

    def test_model_instance_is_returned_unchanged(self) -> None:
        var = BasicVariable(name="v", value=LiteralValue(value="1"))

        assert parse_variable(var) is var

    def test_declarations_are_frozen(self) -> None:
        var = parse_variable({"name": "v", "varType": "basic", "value": "1"})

        with pytest.raises(ValueError, match="frozen"):
            var.name = "w"  # type: ignore[misc]


class TestOtherKinds:
    def test_list(self) -> None:
        var = parse_variable({"name": "l", "varType": "list", "value": ["a", {"value": "b", "varType": "ref"}]})

        assert isinstance(var, ListVariable)
        assert var.value == [LiteralValue(value="a"), ReferenceValue(value="b")]

    def test_table(self) -> None:
        var = parse_variable(
            {
                "name": "t",
                "varType": "table",
                "value": [
                    {
                        "conditions": [{"val1": "10", "comparison": "eq", "val2": "10"}],
                        "output": "yes",
                    },
                ],
                "default": "no",
            },
        )

        assert isinstance(var, TableVariable)
        assert var.priority == Priority.FIRST
        condition = var.value[0].conditions[0]
        assert condition.comparison == Comparison.EQ
        assert condition.val2 == LiteralValue(value="10")

    def test_table_inline_list_operand(self) -> None:
        var = parse_variable(
            {
                "name": "t",
                "varType": "table",
                "priority": "last",
                "value": [
                    {
                        "conditions": [{"val1": "a", "comparison": "in", "val2": ["a", "b"]}],
                        "output": "yes",
                    },
                ],
                "default": "no",
            },
        )

        assert var.priority == Priority.LAST
        assert var.value[0].conditions[0].val2 == [LiteralValue(value="a"), LiteralValue(value="b")]

    def test_expression(self) -> None:
        var = parse_variable(
            {"name": "e", "varType": "expression", "value": "f(x)+1", "functions": ["f(x)=x*2"], "vars": {"x": "5"}},
        )

        assert isinstance(var, ExpressionVariable)
        assert var.value == LiteralValue(value="f(x)+1")
        assert var.functions == [LiteralValue(value="f(x)=x*2")]

    def test_unknown_var_type_is_kept(self) -> None:
        var = parse_variable({"name": "u", "varType": "matrix", "value": [[1, 2]], "extra": True})

        assert isinstance(var, UnknownVariable)
        assert var.var_type == "matrix"
        assert var.value == [[1, 2]]


class TestInvalidDeclarations:
    @pytest.mark.parametrize(
        "raw",
        [
            pytest.param({"name": "v", "value": "1"}, id="missing-var-type"),
            pytest.param({"name": "a.b", "varType": "basic", "value": "1"}, id="dotted-name"),
            pytest.param({"name": "v", "scope": "s-1", "varType": "basic", "value": "1"}, id="bad-scope"),
            pytest.param({"name": "v", "varType": "list", "value": "abc"}, id="list-not-a-list"),
            pytest.param({"name": "v", "varType": "basic", "value": 42}, id="number-value"),
            pytest.param({"name": "v", "varType": "table", "value": []}, id="table-without-default"),
            pytest.param(
                {"name": "v", "varType": "basic", "value": {"value": "x", "varType": "bogus"}},
                id="unknown-value-marker",
            ),
            pytest.param("not a mapping", id="not-a-mapping"),
        ],
    )
    def test_raises_invalid_variable_error(self, raw: object) -> None:
        with pytest.raises(InvalidVariableError):
            parse_variable(raw)

    def test_invalid_variable_error_is_type_error(self) -> None:
        with pytest.raises(TypeError):
            parse_variable({"name": "v", "varType": "list", "value": "abc"})


class TestParseVariablesJson:
    def test_parses_array(self) -> None:
        variables = parse_variables_json(
            '[{"name": "a", "varType": "basic", "value": "1"},'
            ' {"name": "b", "scope": "s", "varType": "list", "value": ["x"]}]',
        )

        assert [v.path() for v in variables] == ["a", "s.b"]

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(InvalidVariableError):
            parse_variables_json("[{")
