"""Scoped user variables evaluated on demand."""

__all__ = [
    "BasicType",
    "BasicVariable",
    "Comparison",
    "ConditionTrace",
    "ConfigError",
    "DependencyGraph",
    "EvaluationContext",
    "Evaluator",
    "ExpressionError",
    "ExpressionParser",
    "ExpressionVariable",
    "InlineExpression",
    "InvalidVariableError",
    "ListVariable",
    "LiteralValue",
    "ParsedExpression",
    "Priority",
    "ReferenceValue",
    "ResolvedOperand",
    "ResultCache",
    "RowTrace",
    "Scope",
    "ScopeLookupError",
    "Sentinel",
    "SimpleEvalParser",
    "TableRow",
    "TableTrace",
    "TableVariable",
    "UnknownVariable",
    "UserVars",
    "UserVarsConfig",
    "UserVarsError",
    "VarType",
    "Variable",
    "VariableModel",
    "VariableNotFoundError",
    "VariableStore",
    "get_config",
    "get_path",
    "is_sentinel",
    "load_config",
    "normalize_path",
    "parse_variable",
    "parse_variables_json",
    "split_path",
]

from ._cache import ResultCache
from ._config import UserVarsConfig, get_config, load_config
from ._enums import BasicType, Comparison, Priority, Sentinel, VarType, is_sentinel
from ._errors import (
    ConfigError,
    ExpressionError,
    InvalidVariableError,
    ScopeLookupError,
    UserVarsError,
    VariableNotFoundError,
)
from ._eval_engine import ConditionTrace, EvaluationContext, Evaluator, ResolvedOperand, RowTrace, TableTrace
from ._graph import DependencyGraph
from ._mathparser import ExpressionParser, ParsedExpression, SimpleEvalParser
from ._models import (
    BasicVariable,
    ExpressionVariable,
    InlineExpression,
    ListVariable,
    LiteralValue,
    ReferenceValue,
    TableRow,
    TableVariable,
    UnknownVariable,
    Variable,
    VariableModel,
    parse_variable,
    parse_variables_json,
)
from ._path import get_path, normalize_path, split_path
from ._store import Scope, VariableStore
from ._uservars import UserVars
