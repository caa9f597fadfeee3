# src/neogm/core/tree_node.py
from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Dict, Any, List, Optional, Set, Tuple

from neogm.core.raw import RawNode


class TreeNode(BaseModel):
    """
    A deduplicated node discovered while walking query result rows.

    One TreeNode exists per element id for the duration of a single read
    call. Children are kept in first-discovery order and never repeat.
    """

    id: str = Field(..., min_length=1, description="Element id of the graph node")
    labels: Tuple[str, ...] = Field(default=(), description="Node labels")
    properties: Dict[str, Any] = Field(
        default_factory=dict,
        description="Node properties, with the element id injected as 'id'"
    )
    children: List["TreeNode"] = Field(default_factory=list, repr=False)

    # child id -> (relationship type, direction) pairs the child was reached through
    child_relationships: Dict[str, Set[Tuple[str, Optional[str]]]] = Field(default_factory=dict, repr=False)

    model_config = ConfigDict(
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "id": "4:2b7c:12",
                "labels": ["World"],
                "properties": {"id": "4:2b7c:12", "name": "Ozia"}
            }
        }
    )

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id_to_string(cls, v):
        """Ensure ID is always a string."""
        return str(v) if v is not None else v

    @classmethod
    def from_raw(cls, raw: RawNode) -> "TreeNode":
        """Create a TreeNode from the first sighting of a raw node."""
        properties = dict(raw.properties)
        properties["id"] = raw.element_id
        return cls(id=raw.element_id, labels=raw.labels, properties=properties)

    @property
    def label(self) -> Optional[str]:
        """Primary (first) label."""
        return self.labels[0] if self.labels else None

    def has_label(self, label: str) -> bool:
        return label in self.labels

    def has_child(self, child: "TreeNode") -> bool:
        """Check if ``child`` is already registered (by id, not by value)."""
        return child.id in self.child_relationships

    def add_child(
        self,
        child: "TreeNode",
        relationship_type: Optional[str] = None,
        direction: Optional[str] = None
    ) -> bool:
        """
        Attach a child unless it is already present.

        Args:
            child: Node to attach
            relationship_type: Relationship the child was reached through, if known
            direction: Direction of that relationship seen from this node, if known

        Returns:
            True if the child was newly attached
        """
        if child.id == self.id:
            return False

        added = False
        if child.id not in self.child_relationships:
            self.children.append(child)
            self.child_relationships[child.id] = set()
            added = True

        if relationship_type:
            self.child_relationships[child.id].add((relationship_type, direction))
        return added

    def children_with_label(
        self,
        label: str,
        relationship_type: Optional[str] = None,
        direction: Optional[str] = None
    ) -> List["TreeNode"]:
        """
        Children carrying ``label``, in discovery order.

        When ``relationship_type`` is given, children known to be reached only
        through other relationships are skipped; children with no recorded
        relationship always qualify. ``direction`` narrows this further: a
        child reached through the same type in the opposite direction is
        skipped, a child recorded without a direction still qualifies.
        """
        matches = []
        for child in self.children:
            if not child.has_label(label):
                continue
            reached_via = self.child_relationships.get(child.id)
            if relationship_type and reached_via and not any(
                rel_type == relationship_type and (direction is None or rel_dir is None or rel_dir == direction)
                for rel_type, rel_dir in reached_via
            ):
                continue
            matches.append(child)
        return matches

    def get_property(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    @property
    def child_count(self) -> int:
        return len(self.children)

    def to_dict(self, _seen: Optional[Set[str]] = None) -> Dict[str, Any]:
        """Nested plain-dict view; a node already on the path is not expanded again."""
        seen = set(_seen or ())
        seen.add(self.id)
        return {
            "id": self.id,
            "labels": list(self.labels),
            "properties": dict(self.properties),
            "children": [
                child.to_dict(seen) if child.id not in seen else {"id": child.id, "labels": list(child.labels)}
                for child in self.children
            ],
        }

    def __repr__(self) -> str:
        return f"TreeNode(id='{self.id}', labels={list(self.labels)}, children={len(self.children)})"
