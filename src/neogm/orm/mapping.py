# src/neogm/orm/mapping.py
"""
Typed reconstruction: TreeNode forest -> GraphEntity instances.
"""

from typing import AbstractSet, Any, Dict, Iterable, List, Optional, Type, TypeVar
import logging

from pydantic import ValidationError

from neogm.core.node_tree import NodeTree, RowLayout
from neogm.core.raw import RawNode, RawRecord
from neogm.core.tree_node import TreeNode
from neogm.exceptions import MappingError
from neogm.orm.entities import GraphEntity
from neogm.orm.registry import ModelRegistry


logger = logging.getLogger(__name__)

EntityType = TypeVar('EntityType', bound=GraphEntity)


def to_python_value(value: Any) -> Any:
    """Driver temporal/spatial values expose ``to_native``; everything else passes through."""
    to_native = getattr(value, "to_native", None)
    if callable(to_native):
        return to_native()
    if isinstance(value, list):
        return [to_python_value(item) for item in value]
    return value


class EntityMapper:
    """
    Maps TreeNodes onto registered entity classes, recursively.

    Relationship fields receive the children that carry the field's target
    label (and, when known, were reached through the field's relationship
    type and direction). Each child's class comes from the registry, so a
    child labelled ``["Admin", "User"]`` can map to an ``Admin`` subclass of
    ``User``.
    """

    def __init__(self, registry: ModelRegistry):
        self.registry = registry

    def resolve(self, labels: Iterable[str], expected: Optional[Type[GraphEntity]] = None) -> Type[GraphEntity]:
        """
        Registered class for a label set, restricted to subclasses of ``expected``.

        When several labels resolve, the most-derived class is returned, so a
        node labelled ``["User", "ZAdmin"]`` maps to ``ZAdmin`` whatever order
        the labels come back in.

        Raises:
            MappingError: If no label resolves to a compatible class
        """
        labels = list(labels)
        if expected is None:
            return self.registry.resolve_type(labels)

        candidates = []
        for label in labels:
            entity_cls = self.registry.get(label)
            if entity_cls is not None and issubclass(entity_cls, expected) and entity_cls not in candidates:
                candidates.append(entity_cls)

        # Most-derived wins; label order only breaks ties between unrelated classes
        for entity_cls in candidates:
            if not any(other is not entity_cls and issubclass(other, entity_cls) for other in candidates):
                return entity_cls
        raise MappingError(
            f"unresolved label: none of {labels} is registered as {expected.__name__} or a subclass"
        )

    def map_node(
        self,
        node: TreeNode,
        expected: Optional[Type[EntityType]] = None,
        _path: AbstractSet[str] = frozenset()
    ) -> EntityType:
        """
        Build a typed entity from ``node`` and, recursively, its children.

        A node already on the current path is mapped without relationships,
        which keeps cyclic data finite.
        """
        entity_cls = self.resolve(node.labels, expected)
        schema = entity_cls.graph_schema()

        data: Dict[str, Any] = {}
        for prop in schema.properties:
            if prop.key in node.properties:
                data[prop.field_name] = to_python_value(node.properties[prop.key])
        if schema.id_field:
            data[schema.id_field] = node.id

        if node.id not in _path:
            path = _path | {node.id}
            for rel in schema.relationships:
                children = node.children_with_label(rel.target_label, rel.rel_type, rel.direction)
                data[rel.field_name] = [self.map_node(child, rel.target, path) for child in children]

        try:
            return entity_cls.model_validate(data)
        except ValidationError as e:
            raise MappingError(
                f"Cannot map node {node.id} {list(node.labels)} onto {entity_cls.__name__}: {e}"
            ) from e

    def refresh(self, entity: EntityType, raw: RawNode) -> EntityType:
        """
        Copy a stored node's properties and element id back onto ``entity``.

        Relationship fields are left alone. Properties missing from ``raw``
        keep their current value.
        """
        schema = type(entity).graph_schema()
        try:
            for prop in schema.properties:
                if prop.key in raw.properties:
                    setattr(entity, prop.field_name, to_python_value(raw.properties[prop.key]))
        except ValidationError as e:
            raise MappingError(
                f"Cannot refresh {type(entity).__name__} from node {raw.element_id}: {e}"
            ) from e
        entity.set_element_id(raw.element_id)
        return entity

    def map_raw(self, raw: RawNode, expected: Optional[Type[EntityType]] = None) -> EntityType:
        """Map a single raw node without relationships."""
        return self.map_node(TreeNode.from_raw(raw), expected, _path=frozenset({raw.element_id}))

    def map_roots(
        self,
        tree: NodeTree,
        root: Type[EntityType],
        column: Optional[str] = None
    ) -> List[EntityType]:
        """Map every root carrying ``root``'s label, in first-discovery order."""
        roots = tree.roots(root.graph_label(), column)
        logger.debug("Mapping %d %s root(s)", len(roots), root.graph_label())
        return [self.map_node(node, root) for node in roots]


def reconstruct(
    records: Iterable[RawRecord],
    root: Type[EntityType],
    registry: ModelRegistry,
    layout: Optional[RowLayout] = None,
    root_column: Optional[str] = None
) -> List[EntityType]:
    """
    Rows -> deduplicated tree -> typed roots, in one call.

    Args:
        records: Result rows
        root: Entity class of the requested roots
        registry: Label registry used to resolve node classes
        layout: Column -> parent column links; sequential linking when omitted
        root_column: Only nodes seen in this column may be roots

    Returns:
        Typed root entities in first-discovery order
    """
    tree = NodeTree.from_records(records, layout)
    return EntityMapper(registry).map_roots(tree, root, root_column)
