"""Glue between expression declarations and the arithmetic parser.

The declaration is turned into one self-contained text (function definitions
first, then the expression) and a flat binding table holding only the free
variables the parser reports. Parsing and arithmetic are left to the parser.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import numpy as np

from uservars._enums import Sentinel, is_sentinel, list_path, missing_path
from uservars._errors import ExpressionError
from uservars._mathparser import ExpressionParser
from uservars._models import Value

from ._table import EvalValue, ResolvedOperand, Resolver

logger = logging.getLogger(__name__)

STATEMENT_SEPARATOR = "; "


def build_expression_text(functions: Iterable[str], expression: str) -> str:
    """Prepend function definitions to an expression.

    Example:
        >>> build_expression_text(["f(x) = x * 2"], "f(3) + 1")
        'f(x) = x * 2; f(3) + 1'

    """
    return STATEMENT_SEPARATOR.join([*functions, expression])


def _to_number(text: str) -> Any:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def to_binding(value: EvalValue) -> Any:
    """Convert an evaluated value into a parser binding.

    Numeric strings become numbers and all-numeric lists become numpy arrays,
    so arithmetic on them is element-wise. Anything that does not parse is
    passed through as text.
    """
    if isinstance(value, list):
        items = [_to_number(item) for item in value]
        if items and not any(isinstance(item, str) for item in items):
            return np.array(items)
        return items
    return _to_number(value)


def _format_scalar(value: Any) -> str:
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_result(result: Any) -> EvalValue:
    """Stringify a parser result; sequences and comma-bearing text become lists."""
    if isinstance(result, np.ndarray):
        result = result.tolist()
    if isinstance(result, list | tuple):
        return [_format_scalar(item) for item in result]
    text = _format_scalar(result)
    if "," in text:
        return [part.strip() for part in text.split(",")]
    return text


def _problem(operand: ResolvedOperand) -> str | None:
    """The sentinel to return instead of a result, if the operand is unusable."""
    if operand.value is Sentinel.MISSING_REFERENCE:
        return missing_path(operand.reference)
    if is_sentinel(operand.value):
        return operand.value  # type: ignore[return-value]
    return None


def evaluate_expression(
    expression: Value,
    bindings: Mapping[str, Value],
    functions: Sequence[Value],
    *,
    resolve: Resolver,
    parser: ExpressionParser,
) -> EvalValue:
    """Evaluate an expression declaration.

    Args:
        expression: The expression text, directly or via a reference.
        bindings: Values for names used in the expression.
        functions: Function definitions prepended to the expression.
        resolve: Resolves a declared value.
        parser: The arithmetic capability.

    Returns:
        The stringified result, or a sentinel when a reference cannot be used
        or the text does not evaluate.

    """
    definitions: list[str] = []
    for function in functions:
        resolved = resolve(function)
        if (problem := _problem(resolved)) is not None:
            return problem
        if isinstance(resolved.value, list):
            definitions.extend(resolved.value)
        else:
            definitions.append(resolved.value)

    main = resolve(expression)
    if (problem := _problem(main)) is not None:
        return problem
    if isinstance(main.value, list):
        return list_path(main.reference)

    text = build_expression_text(definitions, main.value)
    try:
        parsed = parser.parse(text)
    except ExpressionError as e:
        logger.warning("Cannot parse expression %r: %s", text, e)
        return Sentinel.EXPRESSION_ERROR

    values: dict[str, Any] = {}
    for name in sorted(parsed.free_variables()):
        if name not in bindings:
            if parsed.provides(name):
                continue
            return missing_path(name)
        resolved = resolve(bindings[name])
        if (problem := _problem(resolved)) is not None:
            return problem
        values[name] = to_binding(resolved.value)

    try:
        result = parsed.evaluate(values)
    except ExpressionError as e:
        logger.warning("Cannot evaluate expression %r: %s", text, e)
        return Sentinel.EXPRESSION_ERROR

    logger.debug("Expression %r = %r", text, result)
    return format_result(result)
