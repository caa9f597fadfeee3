# src/neogm/orm/populate.py
"""
neogm Populate Engine

Expands an entity's relationship fields into OPTIONAL MATCH segments, runs
the composed query once, and hands the rows to the node tree for
reconstruction.

Depth semantics:
    depth=0 (UNBOUNDED)  every reachable relationship field is expanded
    depth=N (N > 0)      at most N hops from the root

At unbounded depth an entity class already expanded on the current path gets
its traversal segment but is not expanded again, so self-referential and
mutually referential schemas terminate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, Generic, List, Optional, Type, TypeVar
import logging

from neogm.core.node_tree import ColumnLink, NodeTree
from neogm.core.raw import RawRecord
from neogm.exceptions import MultipleResultsError, NotFoundError
from neogm.orm.entities import GraphEntity
from neogm.orm.query import QueryBuilder, check_identifier, node_pattern, relationship_pattern

if TYPE_CHECKING:
    from neogm.orm.repository import Repository


logger = logging.getLogger(__name__)

EntityType = TypeVar('EntityType', bound=GraphEntity)

UNBOUNDED = 0
ELEMENT_ID = "elementID"
ROOT_ALIAS = "n"


# =============================================================================
# PLANNING
# =============================================================================

@dataclass(frozen=True)
class TraversalSegment:
    """One OPTIONAL MATCH hop from an aliased parent to an aliased target."""
    alias: str
    parent_alias: str
    rel_type: str
    direction: str
    target: Type[GraphEntity]

    @property
    def label(self) -> str:
        return self.target.graph_label()

    @property
    def hops(self) -> int:
        return self.alias.count("_")

    def pattern(self) -> str:
        return relationship_pattern(
            f"({self.parent_alias})",
            self.rel_type,
            self.direction,
            node_pattern(self.alias, self.label),
        )


@dataclass
class PopulatePlan:
    """A composed read: query text, parameters and the row layout it produces."""
    query: str
    params: Dict[str, Any]
    root_alias: str
    segments: List[TraversalSegment] = field(default_factory=list)

    @property
    def columns(self) -> List[str]:
        return [self.root_alias] + [segment.alias for segment in self.segments]

    @property
    def layout(self) -> Dict[str, ColumnLink]:
        layout = {self.root_alias: ColumnLink(parent=None)}
        for segment in self.segments:
            layout[segment.alias] = ColumnLink(segment.parent_alias, segment.rel_type, segment.direction)
        return layout


def plan_traversals(
    entity: Type[GraphEntity],
    depth: int = 1,
    root_alias: str = ROOT_ALIAS
) -> List[TraversalSegment]:
    """
    Traversal segments for every relationship field reachable within ``depth``.

    Segments come out in depth-first declaration order, so a parent's alias
    always precedes its children's.
    """
    if depth < 0:
        raise ValueError("depth must be 0 (unbounded) or a positive number of hops")

    segments: List[TraversalSegment] = []
    unbounded = depth == UNBOUNDED

    def walk(cls: Type[GraphEntity], parent_alias: str, hop: int, path: FrozenSet[type]) -> None:
        for index, rel in enumerate(cls.graph_schema().relationships):
            alias = f"{parent_alias}_{index}"
            segments.append(TraversalSegment(
                alias=alias,
                parent_alias=parent_alias,
                rel_type=rel.rel_type,
                direction=rel.direction,
                target=rel.target,
            ))
            if unbounded:
                if rel.target in path:
                    continue
            elif hop >= depth:
                continue
            walk(rel.target, alias, hop + 1, path | {rel.target})

    walk(entity, root_alias, 1, frozenset({entity}))
    return segments


def match_entity(
    builder: QueryBuilder,
    entity: Type[GraphEntity],
    field_name: Optional[str],
    value: Any,
    alias: str = ROOT_ALIAS,
    param: str = "value"
) -> QueryBuilder:
    """
    ``MATCH (alias:Label)`` plus a WHERE on a property or on the element id.

    ``field_name`` may be a graph property key, an entity field name, the
    entity's identifier field, or ``"elementID"``. ``None`` matches every
    node of the label.
    """
    schema = entity.graph_schema()
    builder.match(node_pattern(alias, schema.label))
    if field_name is None:
        return builder

    if field_name in (ELEMENT_ID, schema.id_field):
        builder.where(f"elementId({alias}) = ${param}")
    else:
        key = field_name
        if key not in schema.property_keys():
            key = schema.key_for_field(field_name) or field_name
        builder.where(f"{alias}.{check_identifier(key, 'property key')} = ${param}")
    return builder.param(param, value)


# =============================================================================
# DEFERRED QUERIES
# =============================================================================

class PopulateQuery(ABC, Generic[EntityType]):
    """
    Deferred read returned by ``Repository.find`` / ``find_all``.

    Nothing touches the database until ``populate`` is awaited.
    """

    def __init__(
        self,
        repository: Repository[EntityType],
        field_name: Optional[str],
        value: Any
    ):
        self.repository = repository
        self.field_name = field_name
        self.value = value

    @property
    def entity(self) -> Type[EntityType]:
        return self.repository.entity

    def compile(self, depth: int = 1, limit: int = 0) -> PopulatePlan:
        """
        Compose the read without running it.

        Args:
            depth: 0 for unbounded expansion, otherwise the maximum hop count
            limit: Maximum number of root nodes, 0 for no limit
        """
        if limit < 0:
            raise ValueError("limit must not be negative")

        segments = plan_traversals(self.entity, depth, ROOT_ALIAS)

        builder = match_entity(QueryBuilder(), self.entity, self.field_name, self.value)
        if limit:
            builder.with_(ROOT_ALIAS).limit(limit)
        for segment in segments:
            builder.optional_match(segment.pattern())
        builder.return_(", ".join([ROOT_ALIAS] + [segment.alias for segment in segments]))

        query, params = builder.build()
        return PopulatePlan(query=query, params=params, root_alias=ROOT_ALIAS, segments=segments)

    async def fetch(self, depth: int = 1, limit: int = 0) -> List[EntityType]:
        """Run the composed read once and map every root."""
        plan = self.compile(depth, limit)
        logger.debug(
            "Populating %s by %s (depth=%d, limit=%d, segments=%d)",
            self.entity.graph_label(), self.field_name, depth, limit, len(plan.segments)
        )
        records: List[RawRecord] = await self.repository.read(plan.query, plan.params)
        tree = NodeTree.from_records(records, plan.layout)
        return self.repository.mapper.map_roots(tree, self.entity, plan.root_alias)

    @abstractmethod
    async def populate(self, depth: int = 1, limit: int = 0) -> Any:
        """Execute the read and shape the result for the caller."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.entity.__name__}, {self.field_name}={self.value!r})"


class FindQuery(PopulateQuery[EntityType]):
    """Single-entity read: exactly one root is required."""

    async def populate(self, depth: int = 1, limit: int = 0) -> EntityType:
        """
        Execute and return the single matching entity.

        Raises:
            NotFoundError: No root matched
            MultipleResultsError: More than one root matched
        """
        results = await self.fetch(depth, limit)
        if not results:
            raise NotFoundError(
                f"No {self.entity.graph_label()} found with {self.field_name} = {self.value!r}"
            )
        if len(results) > 1:
            raise MultipleResultsError(
                f"Expected one {self.entity.graph_label()} with {self.field_name} = {self.value!r}, "
                f"found {len(results)}"
            )
        return results[0]


class FindAllQuery(PopulateQuery[EntityType]):
    """Multi-entity read: zero or more roots."""

    async def populate(self, depth: int = 1, limit: int = 0) -> List[EntityType]:
        return await self.fetch(depth, limit)
