"""Evaluation engine module for uservars.

This module turns stored declarations into values:

- Evaluator: recursive evaluation with cycle detection, dependency recording
  and result caching
- EvaluationContext: immutable per-call state (scope, visited paths, frames)
- TableTrace: diagnostic form of a table evaluation
"""

from ._context import EvaluationContext, Frame
from ._engine import DEFAULT_MAX_DEPTH, Evaluator, Result
from ._expression import build_expression_text, evaluate_expression, format_result
from ._table import (
    ConditionTrace,
    EvalValue,
    ResolvedOperand,
    RowTrace,
    TableTrace,
    compare,
    evaluate_table,
    trace_table,
)

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "ConditionTrace",
    "EvalValue",
    "EvaluationContext",
    "Evaluator",
    "Frame",
    "ResolvedOperand",
    "Result",
    "RowTrace",
    "TableTrace",
    "build_expression_text",
    "compare",
    "evaluate_expression",
    "evaluate_table",
    "format_result",
    "trace_table",
]
