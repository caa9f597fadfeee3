# src/neogm/core/raw.py
"""
Driver-neutral views of query results.

The engine converts every ``neo4j.Record`` into a ``RawRecord`` and every
``neo4j.graph.Node`` inside it into a ``RawNode`` so the reconstruction code
never touches driver types.
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple

from neo4j.graph import Node
from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawNode(BaseModel):
    """A node exactly as the graph engine returned it."""

    element_id: str = Field(..., min_length=1, description="Transaction-scoped element id")
    labels: Tuple[str, ...] = Field(default=(), description="Node labels in node order")
    properties: Dict[str, Any] = Field(default_factory=dict, description="Node property map")

    model_config = ConfigDict(frozen=True)

    @field_validator("element_id", mode="before")
    @classmethod
    def coerce_element_id(cls, v):
        """Element ids are always compared as strings."""
        return str(v) if v is not None else v

    @property
    def label(self) -> Optional[str]:
        """First label, or None for an unlabelled node."""
        return self.labels[0] if self.labels else None

    @classmethod
    def from_driver(cls, node: Node) -> "RawNode":
        """
        Convert a driver node.

        The driver exposes labels as an unordered frozenset, so they are sorted
        to keep label resolution deterministic.
        """
        return cls(
            element_id=node.element_id,
            labels=tuple(sorted(node.labels)),
            properties=dict(node.items()),
        )


class RawRecord(BaseModel):
    """
    One result row: an ordered tuple of named values.

    Values are ``RawNode`` instances, ``None`` (an optional match that found
    nothing) or any other driver value, which reconstruction ignores.
    """

    keys: Tuple[str, ...] = Field(default=())
    values: Tuple[Any, ...] = Field(default=())

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @field_validator("values")
    @classmethod
    def validate_width(cls, v, info):
        keys = info.data.get("keys", ())
        if len(v) != len(keys):
            raise ValueError(f"record has {len(keys)} keys but {len(v)} values")
        return v

    @classmethod
    def of(cls, **columns: Any) -> "RawRecord":
        """Build a record from keyword columns, keeping their order."""
        return cls(keys=tuple(columns.keys()), values=tuple(columns.values()))

    @classmethod
    def from_driver(cls, record: Any) -> "RawRecord":
        """Convert a ``neo4j.Record``, turning graph nodes into ``RawNode``."""
        keys = tuple(record.keys())
        values = tuple(
            RawNode.from_driver(value) if isinstance(value, Node) else value
            for value in record.values()
        )
        return cls(keys=keys, values=values)

    def items(self) -> Iterator[Tuple[str, Any]]:
        return iter(zip(self.keys, self.values))

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self.values[self.keys.index(key)]
        except ValueError:
            return default

    def nodes(self) -> List[Tuple[str, RawNode]]:
        """Non-null node columns in declared order."""
        return [(key, value) for key, value in self.items() if isinstance(value, RawNode)]

    def __len__(self) -> int:
        return len(self.keys)
