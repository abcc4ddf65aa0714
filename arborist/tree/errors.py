"""Errors raised by the tree manager. All propagate to the caller unmodified."""

from arborist.models import NodeId


class TreeError(Exception):
    """Base class for tree manager errors."""


class ConfigurationError(TreeError):
    """A changeset names a column the caller may not write."""

    def __init__(self, columns: list[str] | set[str] | frozenset[str]) -> None:
        self.columns = sorted(columns)
        super().__init__(
            f"Columns cannot be specified manually: {', '.join(self.columns)}"
        )


class StructuralError(TreeError):
    """A parent reassignment would create a cycle."""

    def __init__(self, node_id: NodeId, parent_id: NodeId) -> None:
        self.node_id = node_id
        self.parent_id = parent_id
        super().__init__(f"Node {parent_id!r} is not a valid parent for node {node_id!r}")


class DataCorruptionError(TreeError):
    """Stored parent references are cyclic or otherwise inconsistent."""

    def __init__(self, node_id: NodeId | None, reason: str) -> None:
        self.node_id = node_id
        self.reason = reason
        super().__init__(f"Corrupt tree data near node {node_id!r}: {reason}")


class NodeNotFoundError(TreeError):
    def __init__(self, node_id: NodeId) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")
