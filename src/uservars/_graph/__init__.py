"""Graph module tracking which variables were read by which.

This module contains:
- DependencyGraph[T]: A generic, mutable directed graph of "is read by" edges
"""

from ._dependency_graph import DependencyGraph

__all__ = ["DependencyGraph"]
