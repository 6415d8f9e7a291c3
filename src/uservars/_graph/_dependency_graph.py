"""Generic dependency graph abstraction."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(slots=True)
class DependencyGraph[T]:
    """A directed graph recording which nodes were read to compute which.

    The graph represents "depends on" relationships:
    - predecessors[b] = {a} means "b was computed by reading a"
    - successors[a] = {b} means "a was read when computing b"

    Unlike the input, the graph is mutable: edges are added while values are
    computed and a node's dependencies are pruned before it is recomputed.
    Cycles are allowed; queries terminate on them.

    Attributes:
        _predecessors: Mapping from node to its direct dependencies.
        _successors: Mapping from node to nodes that depend on it.

    """

    _predecessors: defaultdict[T, set[T]] = field(default_factory=lambda: defaultdict(set))
    _successors: defaultdict[T, set[T]] = field(default_factory=lambda: defaultdict(set))

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[T, T]]) -> DependencyGraph[T]:
        """Build a graph from (source, target) edges.

        An edge (a, b) means "b depends on a".

        Example:
            >>> graph = DependencyGraph.from_edges([("a", "b"), ("b", "c")])
            >>> graph.predecessors("b")
            frozenset({'a'})

        """
        graph: DependencyGraph[T] = cls()
        for src, dst in edges:
            graph.add_edge(src, dst)
        return graph

    def add_edge(self, src: T, dst: T) -> None:
        """Record that ``dst`` depends on ``src``. Adding an existing edge is a no-op."""
        self._predecessors[dst].add(src)
        self._successors[src].add(dst)

    def clear_dependencies(self, node: T) -> None:
        """Remove every edge pointing into ``node``.

        Used before recomputing a node so its edges are rebuilt from the reads
        actually made this time.
        """
        for src in self._predecessors.pop(node, set()):
            dependents = self._successors.get(src)
            if dependents is None:
                continue
            dependents.discard(node)
            if not dependents:
                del self._successors[src]

    @property
    def nodes(self) -> frozenset[T]:
        """All nodes that take part in at least one edge."""
        return frozenset(n for n, deps in self._predecessors.items() if deps) | frozenset(
            n for n, deps in self._successors.items() if deps
        )

    def predecessors(self, node: T) -> frozenset[T]:
        """Get direct dependencies of a node (nodes it depends on)."""
        return frozenset(self._predecessors.get(node, ()))

    def successors(self, node: T) -> frozenset[T]:
        """Get direct dependents of a node (nodes that depend on it)."""
        return frozenset(self._successors.get(node, ()))

    def ancestors(self, node: T) -> frozenset[T]:
        """Get all transitive dependencies of a node.

        Args:
            node: The node to query.

        Returns:
            Set of all nodes that this node transitively depends on.

        """
        visited: set[T] = set()
        stack = list(self._predecessors.get(node, ()))
        while stack:
            current = stack.pop()
            if current not in visited:
                visited.add(current)
                stack.extend(self._predecessors.get(current, ()))
        return frozenset(visited)

    def descendants(self, node: T) -> frozenset[T]:
        """Get all transitive dependents of a node.

        Args:
            node: The node to query.

        Returns:
            Set of all nodes that transitively depend on this node.

        """
        visited: set[T] = set()
        stack = list(self._successors.get(node, ()))
        while stack:
            current = stack.pop()
            if current not in visited:
                visited.add(current)
                stack.extend(self._successors.get(current, ()))
        return frozenset(visited)

    def __len__(self) -> int:
        """Return the number of nodes in the graph."""
        return len(self.nodes)

    def __contains__(self, node: object) -> bool:
        """Check if a node takes part in any edge."""
        return bool(self._predecessors.get(node)) or bool(self._successors.get(node))  # type: ignore[call-overload]
