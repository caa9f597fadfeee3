# src/neogm/core/node_tree.py
"""
neogm Node Tree

Turns flat, denormalized query rows into a deduplicated forest of TreeNodes
with inferred parent/child edges. Mapping the forest onto typed entities
lives in ``neogm.orm.mapping``.
"""
from typing import (
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)
import logging

from neogm.core.raw import RawNode, RawRecord
from neogm.core.tree_node import TreeNode


logger = logging.getLogger(__name__)


class ColumnLink:
    """Where a result column hangs in the traversal that produced it."""

    __slots__ = ("parent", "relationship_type", "direction")

    def __init__(
        self,
        parent: Optional[str],
        relationship_type: Optional[str] = None,
        direction: Optional[str] = None
    ):
        self.parent = parent
        self.relationship_type = relationship_type
        self.direction = direction

    def __repr__(self) -> str:
        return (
            f"ColumnLink(parent={self.parent!r}, relationship_type={self.relationship_type!r}, "
            f"direction={self.direction!r})"
        )


# column name -> link to its parent column
RowLayout = Mapping[str, ColumnLink]


class NodeTree:
    """
    Deduplicated forest built from query result rows.

    Without a layout, each non-null node in a row is the parent of the next
    non-null node in that row. With a layout (as composed by the populate
    planner) each column names its parent column, which keeps sibling
    branches of the same row apart.
    """

    def __init__(self, layout: Optional[RowLayout] = None):
        self.layout: Dict[str, ColumnLink] = dict(layout or {})

        # Core storage, insertion order == first discovery order
        self._nodes: Dict[str, TreeNode] = {}

        # column -> ids first seen in that column
        self._columns: Dict[str, Dict[str, None]] = {}

    @classmethod
    def from_records(
        cls,
        records: Iterable[RawRecord],
        layout: Optional[RowLayout] = None
    ) -> "NodeTree":
        """Build a tree in two passes: deduplicate, then link."""
        records = list(records)
        tree = cls(layout=layout)
        for record in records:
            tree.add_record_nodes(record)
        for record in records:
            tree.link_record(record)
        logger.debug("Reconstructed %d nodes from %d rows", len(tree), len(records))
        return tree

    # =============================================================================
    # DEDUPLICATION
    # =============================================================================

    def add_node(self, raw: RawNode, column: Optional[str] = None) -> TreeNode:
        """Add a raw node, reusing the existing TreeNode for a known element id."""
        node = self._nodes.get(raw.element_id)
        if node is None:
            node = TreeNode.from_raw(raw)
            self._nodes[raw.element_id] = node

        if column is not None:
            self._columns.setdefault(column, {})[node.id] = None
        return node

    def add_record_nodes(self, record: RawRecord) -> None:
        for column, raw in record.nodes():
            self.add_node(raw, column)

    # =============================================================================
    # LINKING
    # =============================================================================

    def link_record(self, record: RawRecord) -> None:
        """Infer parent/child edges for one row."""
        if self.layout:
            self._link_by_layout(record)
        else:
            self._link_sequentially(record)

    def _link_sequentially(self, record: RawRecord) -> None:
        parent: Optional[TreeNode] = None
        for _, raw in record.nodes():
            current = self._nodes.get(raw.element_id)
            if current is None:
                continue
            if parent is not None:
                parent.add_child(current)
            parent = current

    def _link_by_layout(self, record: RawRecord) -> None:
        row: Dict[str, TreeNode] = {}
        for column, raw in record.nodes():
            node = self._nodes.get(raw.element_id)
            if node is not None:
                row[column] = node

        for column, node in row.items():
            link = self.layout.get(column)
            if link is None or link.parent is None:
                continue
            parent = row.get(link.parent)
            if parent is not None:
                parent.add_child(node, link.relationship_type, link.direction)

    # =============================================================================
    # QUERIES
    # =============================================================================

    def get_node(self, node_id: str) -> Optional[TreeNode]:
        return self._nodes.get(str(node_id))

    def has_node(self, node_id: str) -> bool:
        return str(node_id) in self._nodes

    def nodes(self) -> List[TreeNode]:
        """All nodes in first-discovery order."""
        return list(self._nodes.values())

    def nodes_with_label(self, label: str) -> List[TreeNode]:
        return [node for node in self._nodes.values() if node.has_label(label)]

    def column_nodes(self, column: str) -> List[TreeNode]:
        """Nodes that appeared in ``column``, in first-discovery order."""
        return [self._nodes[node_id] for node_id in self._columns.get(column, {})]

    def roots(self, label: str, column: Optional[str] = None) -> List[TreeNode]:
        """
        Candidate roots for mapping.

        Args:
            label: Label the roots must carry
            column: Restrict to nodes seen in this result column

        Returns:
            Matching nodes in first-discovery order
        """
        candidates = self.column_nodes(column) if column is not None else self.nodes()
        return [node for node in candidates if node.has_label(label)]

    def edges(self) -> Iterator[Tuple[str, str]]:
        """(parent id, child id) pairs."""
        for node in self._nodes.values():
            for child in node.children:
                yield node.id, child.id

    @property
    def edge_count(self) -> int:
        return sum(node.child_count for node in self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return self.has_node(node_id)

    def __repr__(self) -> str:
        return f"NodeTree(nodes={len(self._nodes)}, edges={self.edge_count})"
