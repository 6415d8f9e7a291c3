"""The engine facade embedders talk to."""

import copy
from collections.abc import Mapping
from typing import Any, Self

from ._cache import ResultCache
from ._config import DEFAULT_MAX_DEPTH, UserVarsConfig
from ._errors import ScopeLookupError, VariableNotFoundError
from ._eval_engine import Evaluator, Result
from ._graph import DependencyGraph
from ._mathparser import ExpressionParser
from ._models import VariableModel, parse_variable
from ._path import GLOBAL_SCOPE, get_path, normalize_path, split_path
from ._store import Scope, VariableStore

type Declaration = VariableModel | Mapping[str, Any]


def _copy_result(result: Result) -> Result:
    # Cached results are shared; hand out copies
    return copy.deepcopy(result)


class UserVars:
    """A store of user variables evaluated on demand.

    Variables are declared with `set_var` (as models or their JSON-shaped
    mappings) and read with `get_var`. Results are cached; writing a variable
    invalidates everything that read it, directly or transitively.

    Args:
        global_root: True if global variables are addressed as ``name``,
            False if they are addressed as ``global.name``.
        max_depth: Longest reference chain followed before giving up with
            ``[MAX DEPTH EXCEEDED]``, or None for no limit.
        parser: Arithmetic capability for expressions. Defaults to
            `SimpleEvalParser`.

    Example:
        >>> uv = UserVars()
        >>> uv.set_var({"name": "a", "varType": "basic", "value": "1"})
        True
        >>> uv.get_var("a")
        '1'

    """

    def __init__(
        self,
        global_root: bool = True,  # noqa: FBT001, FBT002
        *,
        max_depth: int | None = DEFAULT_MAX_DEPTH,
        parser: ExpressionParser | None = None,
    ) -> None:
        self._store = VariableStore(global_root=global_root)
        self._graph: DependencyGraph[str] = DependencyGraph()
        self._cache = ResultCache()
        self._evaluator = Evaluator(
            self._store,
            self._graph,
            self._cache,
            parser=parser,
            max_depth=max_depth,
        )

    @classmethod
    def from_config(cls, config: UserVarsConfig, *, parser: ExpressionParser | None = None) -> Self:
        """Create an engine from a loaded configuration."""
        return cls(config.global_root, max_depth=config.max_depth, parser=parser)

    @property
    def global_root(self) -> bool:
        return self._store.global_root

    @property
    def max_depth(self) -> int | None:
        return self._evaluator.max_depth

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def set_var(self, variable: Declaration, overwrite: bool = False) -> bool:  # noqa: FBT001, FBT002
        """Store a variable declaration.

        Args:
            variable: A declaration model or its JSON-shaped mapping.
            overwrite: Whether an existing variable (or a root variable in the
                way of the variable's scope) may be replaced.

        Returns:
            True if the variable was stored, False if an existing one was kept.

        Raises:
            InvalidVariableError: If the declaration is malformed.

        """
        declaration = parse_variable(variable)
        outcome = self._store.put(declaration, overwrite=overwrite)
        if outcome.written:
            self._cache.invalidate(outcome.touched, self._graph)
        return outcome.written

    def set_var_bulk(self, *variables: Declaration) -> list[bool]:
        """Store several declarations without overwriting.

        Each write is independent; a declined one does not stop the others.

        Raises:
            InvalidVariableError: If a declaration is malformed. Nothing is
                stored in that case.

        """
        declarations = [parse_variable(variable) for variable in variables]
        return [self.set_var(declaration, overwrite=False) for declaration in declarations]

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_raw(self, path: str) -> VariableModel:
        """Get the stored declaration at an absolute path, unevaluated.

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
        return node

    def get_var(self, path: str, *, verbose: bool = False) -> Result:
        """Evaluate the variable at an absolute path.

        Args:
            path: Absolute path, e.g. ``"name"`` or ``"scope.name"``.
            verbose: For tables, return the full `TableTrace` instead of the
                output alone. Ignored for other kinds.

        Returns:
            A string, a flat list of strings, or a `TableTrace`. Resolution
            problems are reported inline as sentinel strings.

        Raises:
            VariableNotFoundError: If nothing is stored at the path.
            ScopeLookupError: If the path holds a scope.

        """
        return _copy_result(self._evaluator.evaluate_path(path, trace=verbose))

    def evaluate(self, variable: Declaration, *, verbose: bool = False) -> Result:
        """Evaluate a declaration against the stored variables without storing it."""
        declaration = parse_variable(variable)
        return _copy_result(self._evaluator.evaluate(declaration, trace=verbose))

    def evaluate_all(self) -> dict[str, Any]:
        """Evaluate every stored variable.

        Returns:
            A snapshot shaped like the store: root variables map to their
            value, scopes map to ``{name: value}``.

        """
        snapshot: dict[str, Any] = {}
        for path, _variable in list(self._store.variables()):
            value = self.get_var(path)
            scope, name = split_path(path)
            if scope is None:
                snapshot[name] = value
            else:
                snapshot.setdefault(scope, {})[name] = value
        return snapshot

    # -------------------------------------------------------------------------
    # Paths and introspection
    # -------------------------------------------------------------------------

    def get_path(self, name: str, scope: str = GLOBAL_SCOPE) -> str:
        """Get the absolute path of ``name`` declared in ``scope``."""
        return get_path(name, scope, global_root=self.global_root)

    def normalize_path(self, path: str, scope: str = GLOBAL_SCOPE) -> str:
        """Resolve a reference string as it would be from inside ``scope``."""
        return normalize_path(path, scope, global_root=self.global_root)

    @property
    def scopes(self) -> list[str]:
        """Paths of the scopes created so far."""
        return self._store.scopes

    def dependents(self, path: str) -> frozenset[str]:
        """Paths whose last evaluation read ``path``, directly or transitively."""
        return self._graph.descendants(path)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        node = self._store.lookup(path)
        return node is not None and not isinstance(node, Scope)

    def __len__(self) -> int:
        """Return the number of stored variables."""
        return len(self._store)
