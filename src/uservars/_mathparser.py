"""Arithmetic expression capability.

The evaluator only needs three things from an expression library: parse a
text, list the free variables of the parsed expression, and evaluate it with a
name -> value binding. `ExpressionParser` is that interface; `SimpleEvalParser`
implements it with simpleeval.

Text accepted by `SimpleEvalParser` is a sequence of statements separated by
``;`` or newlines:

- ``f(a, b) = body`` defines a function,
- ``x = expr`` defines a local name,
- the last statement is the result.

``^`` is exponentiation. Numeric lists are bound as numpy arrays, so arithmetic
on them is element-wise.
"""

import ast
import logging
import math
import operator
import re
import statistics
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np
from simpleeval import DEFAULT_OPERATORS, EvalWithCompoundTypes, InvalidExpression

from ._errors import ExpressionError

logger = logging.getLogger(__name__)


class ParsedExpression(Protocol):
    """An expression ready to be evaluated."""

    def free_variables(self) -> frozenset[str]:
        """Names the expression reads that it does not define itself.

        Built-in constants are included, so a caller binding can replace them.
        """
        ...

    def provides(self, name: str) -> bool:
        """Check whether the parser has a value for ``name`` without a binding."""
        ...

    def evaluate(self, bindings: Mapping[str, Any]) -> Any:
        """Evaluate with values for the free variables.

        Raises:
            ExpressionError: If evaluation fails.

        """
        ...


class ExpressionParser(Protocol):
    """Factory of `ParsedExpression` objects."""

    def parse(self, text: str) -> ParsedExpression:
        """Parse an expression text.

        Raises:
            ExpressionError: If the text is not a valid expression.

        """
        ...


def _vectorized(scalar: Callable[[Any], Any], elementwise: np.ufunc) -> Callable[[Any], Any]:
    """Apply ``elementwise`` to arrays and ``scalar`` to everything else."""

    def apply(value: Any) -> Any:
        if isinstance(value, np.ndarray):
            return elementwise(value)
        return scalar(value)

    apply.__name__ = scalar.__name__
    return apply


def _elementwise_operator(
    safe: Callable[[Any, Any], Any],
    plain: Callable[[Any, Any], Any],
) -> Callable[[Any, Any], Any]:
    # simpleeval's length guards are meant for strings and lists, not arrays
    def apply(left: Any, right: Any) -> Any:
        if isinstance(left, np.ndarray) or isinstance(right, np.ndarray):
            return plain(left, right)
        return safe(left, right)

    return apply


MATH_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "ceil": _vectorized(math.ceil, np.ceil),
    "cos": _vectorized(math.cos, np.cos),
    "exp": _vectorized(math.exp, np.exp),
    "float": float,
    "floor": _vectorized(math.floor, np.floor),
    "int": int,
    "len": len,
    "log": _vectorized(math.log, np.log),
    "max": max,
    "mean": statistics.fmean,
    "min": min,
    "round": round,
    "sin": _vectorized(math.sin, np.sin),
    "sqrt": _vectorized(math.sqrt, np.sqrt),
    "sum": sum,
    "tan": _vectorized(math.tan, np.tan),
}

MATH_NAMES: dict[str, Any] = {
    "e": math.e,
    "pi": math.pi,
    "true": True,
    "false": False,
}

_POWER = _elementwise_operator(DEFAULT_OPERATORS[ast.Pow], operator.pow)

MATH_OPERATORS = {
    **DEFAULT_OPERATORS,
    ast.Mult: _elementwise_operator(DEFAULT_OPERATORS[ast.Mult], operator.mul),
    ast.Pow: _POWER,
    ast.BitXor: _POWER,
}

_STATEMENT_SEPARATOR = re.compile(r"[;\n]")
_FUNCTION_DEFINITION = re.compile(r"^([A-Za-z_]\w*)\s*\(([^()]*)\)\s*=(?!=)\s*(.+)$", re.DOTALL)
_ASSIGNMENT = re.compile(r"^([A-Za-z_]\w*)\s*=(?!=)\s*(.+)$", re.DOTALL)
_PARAMETER = re.compile(r"^[A-Za-z_]\w*$")

# Failures of user-authored text while simpleeval runs it
_EVALUATION_ERRORS = (
    InvalidExpression,
    ArithmeticError,
    TypeError,
    ValueError,
    KeyError,
    IndexError,
    SyntaxError,
)


@dataclass(frozen=True, slots=True)
class FunctionDefinition:
    name: str
    params: tuple[str, ...]
    body: str


@dataclass(frozen=True, slots=True)
class Assignment:
    name: str
    body: str


type Statement = FunctionDefinition | Assignment


def _read_names(source: str) -> frozenset[str]:
    """Names loaded by a single expression, excluding called function names."""
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as e:
        msg = f"Invalid expression '{source}': {e.msg}"
        raise ExpressionError(msg) from e

    call_targets = {id(node.func) for node in ast.walk(tree) if isinstance(node, ast.Call)}
    loaded: set[str] = set()
    stored: set[str] = set()
    for node in ast.walk(tree):
        if not isinstance(node, ast.Name) or id(node) in call_targets:
            continue
        if isinstance(node.ctx, ast.Store):
            stored.add(node.id)
        else:
            loaded.add(node.id)
    # Comprehension targets are bound inside the expression
    return frozenset(loaded - stored)


def _parse_statement(source: str) -> Statement | None:
    if match := _FUNCTION_DEFINITION.match(source):
        name, raw_params, body = match.groups()
        params = tuple(p.strip() for p in raw_params.split(",") if p.strip())
        if not all(_PARAMETER.match(p) for p in params):
            msg = f"Invalid parameter list in function definition '{source}'"
            raise ExpressionError(msg)
        return FunctionDefinition(name=name, params=params, body=body.strip())
    if match := _ASSIGNMENT.match(source):
        name, body = match.groups()
        return Assignment(name=name, body=body.strip())
    return None


@dataclass(frozen=True, slots=True)
class SimpleEvalExpression:
    """A parsed statement sequence evaluated with simpleeval."""

    statements: tuple[Statement, ...]
    result: str
    functions: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    names: Mapping[str, Any] = field(default_factory=dict)
    operators: Mapping[Any, Callable[..., Any]] = field(default_factory=lambda: MATH_OPERATORS)

    def free_variables(self) -> frozenset[str]:
        defined: set[str] = set()
        free: set[str] = set()
        for statement in self.statements:
            match statement:
                case FunctionDefinition(name, params, body):
                    free |= _read_names(body) - set(params) - defined
                    defined.add(name)
                case Assignment(name, body):
                    free |= _read_names(body) - defined
                    defined.add(name)
        free |= _read_names(self.result) - defined
        return frozenset(free)

    def provides(self, name: str) -> bool:
        return name in self.names or name in self.functions

    def evaluate(self, bindings: Mapping[str, Any]) -> Any:
        names: dict[str, Any] = {**self.names, **bindings}
        functions: dict[str, Callable[..., Any]] = dict(self.functions)
        for statement in self.statements:
            match statement:
                case FunctionDefinition():
                    functions[statement.name] = self._define(statement, names, functions)
                case Assignment(name, body):
                    names[name] = self._eval(body, names, functions)
        return self._eval(self.result, names, functions)

    def _define(
        self,
        definition: FunctionDefinition,
        names: Mapping[str, Any],
        functions: Mapping[str, Callable[..., Any]],
    ) -> Callable[..., Any]:
        # functions is shared, so definitions may call each other
        def call(*args: Any) -> Any:
            if len(args) != len(definition.params):
                msg = f"{definition.name}() takes {len(definition.params)} arguments, got {len(args)}"
                raise ExpressionError(msg)
            local = {**names, **dict(zip(definition.params, args, strict=True))}
            return self._eval(definition.body, local, functions)

        call.__name__ = definition.name
        return call

    def _eval(
        self,
        source: str,
        names: Mapping[str, Any],
        functions: Mapping[str, Callable[..., Any]],
    ) -> Any:
        evaluator = EvalWithCompoundTypes(
            names=dict(names),
            functions=dict(functions),
            operators=dict(self.operators),
        )
        try:
            return evaluator.eval(source)
        except ExpressionError:
            raise
        except _EVALUATION_ERRORS as e:
            msg = f"Cannot evaluate '{source}': {e}"
            raise ExpressionError(msg) from e


class SimpleEvalParser:
    """`ExpressionParser` backed by simpleeval.

    Args:
        functions: Extra functions available to expressions.
        names: Extra constants available to expressions.

    """

    def __init__(
        self,
        *,
        functions: Mapping[str, Callable[..., Any]] | None = None,
        names: Mapping[str, Any] | None = None,
    ) -> None:
        self.functions = {**MATH_FUNCTIONS, **(functions or {})}
        self.names = {**MATH_NAMES, **(names or {})}

    def parse(self, text: str) -> SimpleEvalExpression:
        sources = [s.strip() for s in _STATEMENT_SEPARATOR.split(text) if s.strip()]
        if not sources:
            msg = "Expression is empty."
            raise ExpressionError(msg)

        statements: list[Statement] = []
        for source in sources[:-1]:
            statement = _parse_statement(source)
            if statement is None:
                logger.debug("Ignoring statement without effect: %s", source)
                continue
            # Surface syntax errors at parse time
            _read_names(statement.body)
            statements.append(statement)

        result = sources[-1]
        match _parse_statement(result):
            case FunctionDefinition():
                msg = f"Expression must end with a value, not a function definition: '{result}'"
                raise ExpressionError(msg)
            case Assignment() as assignment:
                _read_names(assignment.body)
                statements.append(assignment)
                result = assignment.name
            case None:
                _read_names(result)

        return SimpleEvalExpression(
            statements=tuple(statements),
            result=result,
            functions=self.functions,
            names=self.names,
        )
