"""Per-call evaluation state threaded through recursive evaluation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Frame:
    """Bookkeeping for one path being evaluated.

    Attributes:
        path: The absolute path being evaluated.
        tracked: Whether reads made here are recorded in the dependency graph.
            False for declarations evaluated without being stored.
        context_dependent: True when the result depends on where the
            evaluation started (a cycle or the depth limit was hit below it),
            so it must not be cached.

    """

    path: str
    tracked: bool = True
    context_dependent: bool = False


@dataclass(frozen=True, slots=True)
class EvaluationContext:
    """Immutable view of the evaluation in progress.

    A new context is derived for every path entered; nothing is shared
    between sibling branches except the frames of common ancestors.

    Attributes:
        scope: Scope that relative references are resolved against.
        visited: Paths on the current chain, for cycle detection.
        chain: Frames from the outermost path to the current one.

    """

    scope: str
    visited: frozenset[str] = frozenset()
    chain: tuple[Frame, ...] = ()

    @classmethod
    def start(cls, path: str, scope: str, *, tracked: bool = True) -> EvaluationContext:
        """Create the context for evaluating a declaration at ``path``."""
        return cls(scope=scope, visited=frozenset({path}), chain=(Frame(path=path, tracked=tracked),))

    @property
    def frame(self) -> Frame | None:
        """The frame of the path currently being evaluated."""
        return self.chain[-1] if self.chain else None

    @property
    def depth(self) -> int:
        return len(self.chain)

    def enter(self, path: str, scope: str) -> EvaluationContext:
        """Derive the context for evaluating the declaration stored at ``path``."""
        return EvaluationContext(
            scope=scope,
            visited=self.visited | {path},
            chain=(*self.chain, Frame(path=path)),
        )

    def mark_context_dependent(self) -> None:
        """Flag every frame on the chain as not cacheable."""
        for frame in self.chain:
            frame.context_dependent = True
