"""Canonical data structures for arborist.

Defined once here, referenced everywhere else.
"""

import re

from pydantic import BaseModel, ConfigDict, field_validator

# Opaque node identifier. The bundled schema uses INTEGER PRIMARY KEY.
NodeId = int | str

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class TreeColumns(BaseModel):
    """Names of the four structural columns of a tree table."""

    model_config = ConfigDict(frozen=True)

    id: str = "id"
    parent: str = "node_parent"
    level: str = "node_level"
    depth: str = "node_depth"

    @field_validator("id", "parent", "level", "depth")
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        return cls.validate_identifier(value)

    @staticmethod
    def validate_identifier(name: str) -> str:
        """Return ``name`` if it is a plain SQL identifier, else raise ValueError."""
        if not isinstance(name, str) or not _IDENTIFIER.match(name):
            raise ValueError(f"Invalid SQL identifier: {name!r}")
        return name

    @staticmethod
    def quote_identifier(name: str) -> str:
        """Validate ``name`` and return it double-quoted, safe even for keywords."""
        return f'"{TreeColumns.validate_identifier(name)}"'

    @property
    def derived(self) -> frozenset[str]:
        """Columns only the tree manager may write."""
        return frozenset({self.level, self.depth})

    @property
    def structural(self) -> frozenset[str]:
        return frozenset({self.id, self.parent, self.level, self.depth})
