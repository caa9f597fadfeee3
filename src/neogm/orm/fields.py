"""
neogm Field Tags

Tags are attached to entity fields with ``typing.Annotated`` and tell the
mapper how each field travels to and from the graph:

    class User(GraphEntity):
        username: Annotated[str, Property("username")] = ""
        worlds: Annotated[List["World"], Relationship("OWNS,->")] = []

Fields without a tag are scalar properties keyed by the field name.
"""
from typing import Any, Optional, Tuple
import re


OUTGOING = "->"
INCOMING = "<-"
EITHER = "<->"

DIRECTIONS = (OUTGOING, INCOMING, EITHER)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class FieldTag:
    """Base class for field metadata understood by the schema builder."""

    def __eq__(self, other: Any) -> bool:
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash((type(self), tuple(sorted(self.__dict__.items()))))


class Property(FieldTag):
    """Scalar property tag naming the graph property key."""

    def __init__(self, key: Optional[str] = None):
        if key is not None and not key:
            raise ValueError("Property key cannot be empty")
        self.key = key

    def __repr__(self) -> str:
        return f"Property({self.key!r})"


class ElementId(FieldTag):
    """Marks the field populated from the engine-assigned element id."""

    def __repr__(self) -> str:
        return "ElementId()"


class Relationship(FieldTag):
    """
    Relationship tag: relationship type plus direction.

    Accepts either the compact ``"OWNS,->"`` form or separate arguments,
    ``Relationship("OWNS", "->")``. ``"<->"`` matches either direction and is
    only meaningful for traversal.
    """

    def __init__(self, rel_type: str, direction: Optional[str] = None):
        if direction is None:
            rel_type, direction = parse_relationship_tag(rel_type)

        rel_type = rel_type.strip()
        direction = direction.strip()

        if not _IDENTIFIER.match(rel_type):
            raise ValueError(f"Invalid relationship type: {rel_type!r}")
        if direction not in DIRECTIONS:
            raise ValueError(f"Relationship direction must be one of {DIRECTIONS}, got {direction!r}")

        self.rel_type = rel_type
        self.direction = direction

    @property
    def tag(self) -> str:
        return f"{self.rel_type},{self.direction}"

    def __repr__(self) -> str:
        return f"Relationship({self.tag!r})"


def parse_relationship_tag(tag: str) -> Tuple[str, str]:
    """Split ``"<relationship-type>,<direction>"`` into its two parts."""
    parts = tag.split(",")
    if len(parts) != 2:
        raise ValueError(f"Relationship tag must look like 'TYPE,->', got {tag!r}")
    return parts[0].strip(), parts[1].strip()


def is_valid_direction(direction: str) -> bool:
    return direction in DIRECTIONS
