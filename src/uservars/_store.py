"""Storage of declared (unevaluated) variables."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from ._models import VariableModel
from ._path import split_path

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Scope:
    """A named namespace one level below the root.

    Attributes:
        path: The absolute path of the scope itself.
        members: Names of the variables stored in the scope.

    """

    path: str
    members: set[str] = field(default_factory=set)

    def member_paths(self) -> list[str]:
        return [f"{self.path}.{name}" for name in sorted(self.members)]


type Node = VariableModel | Scope


@dataclass(frozen=True, slots=True)
class WriteOutcome:
    """Result of a write to the store.

    Attributes:
        written: True if the variable was stored.
        touched: Paths whose stored node changed (created, replaced or
            displaced). Cached results reading any of them are stale.

    """

    written: bool
    touched: tuple[str, ...] = ()


class VariableStore:
    """Arena of nodes addressed by absolute path.

    Every path maps to exactly one node, either a variable declaration or a
    `Scope`. A scope owns the paths ``<scope>.<member>``.
    """

    def __init__(self, *, global_root: bool = True) -> None:
        self.global_root = global_root
        self._nodes: dict[str, Node] = {}

    def lookup(self, path: str) -> Node | None:
        """Get the node stored at a path, or None if there is none."""
        return self._nodes.get(path)

    def put(self, variable: VariableModel, *, overwrite: bool) -> WriteOutcome:
        """Store a variable at its path.

        An existing node at the path (or a root variable standing where the
        variable's scope must go) is only replaced when ``overwrite`` is True.

        Args:
            variable: The declaration to store.
            overwrite: Whether existing nodes may be replaced.

        Returns:
            Whether the write happened and which paths it touched.

        """
        path = variable.path(global_root=self.global_root)
        scope_path, name = split_path(path)
        touched: list[str] = []

        if scope_path is None:
            existing = self._nodes.get(path)
            if existing is not None and not overwrite:
                logger.debug("Not overwriting %s", path)
                return WriteOutcome(written=False)
            if isinstance(existing, Scope):
                touched.extend(self._drop_members(existing))
            self._nodes[path] = variable
            touched.append(path)
            logger.debug("Stored %s at root", path)
            return WriteOutcome(written=True, touched=tuple(touched))

        scope = self._nodes.get(scope_path)
        if not isinstance(scope, Scope):
            if scope is not None and not overwrite:
                logger.debug("Not converting variable %s into a scope", scope_path)
                return WriteOutcome(written=False)
            scope = Scope(path=scope_path)
            self._nodes[scope_path] = scope
            touched.append(scope_path)
            logger.debug("Created scope %s", scope_path)

        if path in self._nodes and not overwrite:
            logger.debug("Not overwriting %s", path)
            return WriteOutcome(written=False)

        self._nodes[path] = variable
        scope.members.add(name)
        touched.append(path)
        logger.debug("Stored %s", path)
        return WriteOutcome(written=True, touched=tuple(touched))

    def _drop_members(self, scope: Scope) -> list[str]:
        dropped = scope.member_paths()
        for member_path in dropped:
            del self._nodes[member_path]
        logger.debug("Replaced scope %s, dropping %d members", scope.path, len(dropped))
        return dropped

    @property
    def scopes(self) -> list[str]:
        """Paths of all scopes, in creation order."""
        return [path for path, node in self._nodes.items() if isinstance(node, Scope)]

    def variables(self) -> Iterator[tuple[str, VariableModel]]:
        """Iterate over ``(path, declaration)`` pairs in insertion order."""
        for path, node in self._nodes.items():
            if not isinstance(node, Scope):
                yield path, node

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def __len__(self) -> int:
        """Return the number of stored variables."""
        return sum(1 for _ in self.variables())
