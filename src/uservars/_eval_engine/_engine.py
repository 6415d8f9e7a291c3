"""Core evaluation engine for user variables."""

import logging

from uservars._cache import ResultCache
from uservars._config import DEFAULT_MAX_DEPTH
from uservars._enums import ResultForm, Sentinel, missing_path
from uservars._errors import ScopeLookupError, VariableNotFoundError
from uservars._graph import DependencyGraph
from uservars._mathparser import ExpressionParser, SimpleEvalParser
from uservars._models import (
    BasicVariable,
    ExpressionVariable,
    InlineExpression,
    ListVariable,
    LiteralValue,
    ReferenceValue,
    TableVariable,
    Value,
    VariableModel,
)
from uservars._path import normalize_path
from uservars._store import Scope, VariableStore

from ._context import EvaluationContext
from ._expression import evaluate_expression
from ._table import EvalValue, ResolvedOperand, Resolver, TableTrace, evaluate_table, trace_table

logger = logging.getLogger(__name__)


type Result = EvalValue | TableTrace


class Evaluator:
    """Turns stored declarations into values.

    Every dereference made while evaluating a path is recorded in the
    dependency graph, and results are cached until a write makes them stale.
    Cycles are detected with the set of paths on the current chain; the depth
    limit only guards against very long acyclic chains.

    Args:
        store: Declarations to evaluate.
        graph: Graph receiving one edge per dereference.
        cache: Cache of results.
        parser: Arithmetic capability for expressions.
        max_depth: Longest reference chain followed, or None for no limit.

    """

    def __init__(
        self,
        store: VariableStore,
        graph: DependencyGraph[str],
        cache: ResultCache,
        *,
        parser: ExpressionParser | None = None,
        max_depth: int | None = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._store = store
        self._graph = graph
        self._cache = cache
        self._parser = parser if parser is not None else SimpleEvalParser()
        self.max_depth = max_depth

    @property
    def global_root(self) -> bool:
        return self._store.global_root

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def evaluate_path(self, path: str, *, trace: bool = False) -> Result:
        """Evaluate the variable stored at an absolute path.

        Args:
            path: Absolute path of the variable.
            trace: Return a `TableTrace` when the variable is a table.

        Returns:
            The value, or `Sentinel.MAX_DEPTH_EXCEEDED` when the chain is
            deeper than the interpreter stack, whatever `max_depth` is.

        Raises:
            VariableNotFoundError: If nothing is stored at the path.
            ScopeLookupError: If the path holds a scope.

        """
        node = self._store.lookup(path)
        if node is None:
            msg = f"No variable at path '{path}'"
            raise VariableNotFoundError(msg)
        if isinstance(node, Scope):
            msg = f"Path '{path}' is a scope, not a variable"
            raise ScopeLookupError(msg)
        try:
            return self._evaluate_stored(path, node, None, self._form(node, trace=trace))
        except RecursionError:
            return self._stack_exhausted(path)

    def evaluate(self, variable: VariableModel, *, trace: bool = False) -> Result:
        """Evaluate a declaration, whether or not it is the one stored at its path.

        Only the stored declaration reads from and writes to the cache.
        """
        path = variable.path(global_root=self.global_root)
        if self._store.lookup(path) is variable:
            return self.evaluate_path(path, trace=trace)
        context = EvaluationContext.start(path, variable.scope, tracked=False)
        try:
            return self._dispatch(variable, context, self._form(variable, trace=trace))
        except RecursionError:
            return self._stack_exhausted(path)

    @staticmethod
    def _stack_exhausted(path: str) -> Sentinel:
        # Frames on the unwound chain were never cached
        logger.warning("Reference chain from %s is deeper than the interpreter stack allows", path)
        return Sentinel.MAX_DEPTH_EXCEEDED

    @staticmethod
    def _form(variable: VariableModel, *, trace: bool) -> ResultForm:
        return ResultForm.TRACE if trace and isinstance(variable, TableVariable) else ResultForm.PLAIN

    # -------------------------------------------------------------------------
    # Recursion
    # -------------------------------------------------------------------------

    def _evaluate_stored(
        self,
        path: str,
        variable: VariableModel,
        parent: EvaluationContext | None,
        form: ResultForm,
    ) -> Result:
        cached = self._cache.get(path, form)
        if cached is not None:
            logger.debug("Cache hit for %s (%s)", path, form)
            return cached

        if not self._cache.has_any(path):
            # Rebuilt from the reads made below
            self._graph.clear_dependencies(path)

        if parent is None:
            context = EvaluationContext.start(path, variable.scope)
        else:
            context = parent.enter(path, variable.scope)

        logger.debug("Evaluating %s (%s)", path, variable.var_type)
        result = self._dispatch(variable, context, form)

        frame = context.frame
        if frame is not None and not frame.context_dependent:
            self._cache.put(path, form, result)
        return result

    def _dispatch(self, variable: VariableModel, context: EvaluationContext, form: ResultForm) -> Result:
        match variable:
            case BasicVariable(value=value):
                return self._resolve(value, context).value
            case ListVariable(value=items):
                return self._evaluate_list(items, context)
            case TableVariable():
                resolve = self._resolver(context)
                if form == ResultForm.TRACE:
                    return trace_table(variable, resolve)
                return evaluate_table(variable, resolve)
            case ExpressionVariable(value=value, vars=bindings, functions=functions):
                return evaluate_expression(
                    value,
                    bindings,
                    functions,
                    resolve=self._resolver(context),
                    parser=self._parser,
                )
            case _:
                logger.debug("Variable type %r is not implemented", variable.var_type)
                return Sentinel.NOT_IMPLEMENTED

    def _dereference(self, path: str, context: EvaluationContext) -> EvalValue:
        """Follow a reference to an absolute path from within ``context``."""
        frame = context.frame
        if frame is not None and frame.tracked:
            self._graph.add_edge(path, frame.path)

        if path in context.visited:
            logger.debug("Circular dependency through %s", path)
            context.mark_context_dependent()
            return Sentinel.CIRCULAR_DEPENDENCY
        if self.max_depth is not None and context.depth >= self.max_depth:
            logger.debug("Depth limit %d reached at %s", self.max_depth, path)
            context.mark_context_dependent()
            return Sentinel.MAX_DEPTH_EXCEEDED

        node = self._store.lookup(path)
        if node is None:
            return Sentinel.MISSING_REFERENCE
        if isinstance(node, Scope):
            return Sentinel.POINTS_TO_SCOPE

        result = self._evaluate_stored(path, node, context, ResultForm.PLAIN)
        assert not isinstance(result, TableTrace)
        return result

    def _resolve(self, value: Value | list[Value], context: EvaluationContext) -> ResolvedOperand:
        match value:
            case LiteralValue(value=text):
                return ResolvedOperand(value=text)
            case ReferenceValue(value=reference):
                path = normalize_path(reference, context.scope, global_root=self.global_root)
                return ResolvedOperand(value=self._dereference(path, context), reference=path)
            case InlineExpression(value=text, vars=bindings, functions=functions):
                result = evaluate_expression(
                    LiteralValue(value=text),
                    bindings,
                    functions,
                    resolve=self._resolver(context),
                    parser=self._parser,
                )
                return ResolvedOperand(value=result)
            case list():
                # Inline list operand of a table condition
                return ResolvedOperand(value=self._evaluate_list(value, context))
            case _:
                msg = f"Unknown value type: {type(value)}"
                raise TypeError(msg)

    def _resolver(self, context: EvaluationContext) -> Resolver:
        def resolve(value: Value | list[Value]) -> ResolvedOperand:
            return self._resolve(value, context)

        return resolve

    def _evaluate_list(self, items: list[Value], context: EvaluationContext) -> list[str]:
        result: list[str] = []
        for item in items:
            resolved = self._resolve(item, context)
            if resolved.value is Sentinel.MISSING_REFERENCE:
                result.append(missing_path(resolved.reference))
            elif isinstance(resolved.value, list):
                # Referenced lists are already flat
                result.extend(resolved.value)
            else:
                result.append(resolved.value)
        return result
