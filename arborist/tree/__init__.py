"""Tree consistency management: cached level/depth over an adjacency list."""

from arborist.tree.errors import (
    ConfigurationError,
    DataCorruptionError,
    NodeNotFoundError,
    StructuralError,
    TreeError,
)
from arborist.tree.manager import TreeManager

__all__ = [
    "ConfigurationError",
    "DataCorruptionError",
    "NodeNotFoundError",
    "StructuralError",
    "TreeError",
    "TreeManager",
]
