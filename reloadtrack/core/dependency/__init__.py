"""
Entity dependency tracking and cascading removal.

This package holds the pieces a cascade is made of: the explicit dependency
table, the re-entrancy guard, the live-entity snapshot and the graph walker
that ties them together.
"""
from .explicit import ExplicitDependencyTable
from .graph import DependencyGraphWalker
from .guard import CascadeGuard
from .snapshot import EntityRegistrySnapshot

__all__ = ["DependencyGraphWalker", "ExplicitDependencyTable", "CascadeGuard", "EntityRegistrySnapshot"]
