# src/neogm/orm/repository.py
"""
neogm Repository - Create/Find/Update/Delete for one entity class

A repository is composed with an entity class rather than inherited by it:

    users = Repository(User, engine, registry)
    alice = await users.create(User(username="alice", user_id=7))
    alice = await users.find("userID", 7).populate(depth=1)

Every operation opens its own session and closes it before returning, on
success and on error alike.
"""

from __future__ import annotations

from typing import Any, Dict, Generic, List, Literal, Optional, Type, TypeVar
import logging

from pydantic import BaseModel, ConfigDict, Field

from neogm.core.raw import RawNode, RawRecord
from neogm.exceptions import MappingError, NotFoundError
from neogm.orm.engine import GraphEngine
from neogm.orm.entities import GraphEntity
from neogm.orm.fields import OUTGOING
from neogm.orm.mapping import EntityMapper
from neogm.orm.populate import ELEMENT_ID, ROOT_ALIAS, FindAllQuery, FindQuery, match_entity
from neogm.orm.query import QueryBuilder, check_identifier, node_pattern, relationship_pattern
from neogm.orm.registry import ModelRegistry, default_registry


logger = logging.getLogger(__name__)

EntityType = TypeVar('EntityType', bound=GraphEntity)

RELATED_ALIAS = "r"


class RelationOptions(BaseModel):
    """
    Link the written node to another node in the same statement.

    Example:
        ```python
        RelationOptions(field="userID", value=7, label="User", rel_type="OWNS", direction="<-")
        ```
    """

    field: str = Field(..., min_length=1, description="Property key (or 'elementID') identifying the related node")
    value: Any = Field(..., description="Value the related node is matched on")
    label: str = Field(..., min_length=1, description="Label of the related node")
    rel_type: str = Field(..., min_length=1, description="Relationship type to create")
    direction: Literal["->", "<-"] = Field(default=OUTGOING, description="Direction seen from the written node")

    model_config = ConfigDict(frozen=True)

    @property
    def is_complete(self) -> bool:
        return self.value is not None


class Repository(Generic[EntityType]):
    """
    Generic Create/Find/FindAll/Update/Delete over one entity class.

    Args:
        entity: The GraphEntity subclass this repository persists
        engine: Connected GraphEngine (or anything exposing ``session()``)
        registry: Label registry used to map results; the process-wide
                  default registry when omitted. Frozen on first use.
        database: Database name; the engine default when omitted
    """

    def __init__(
        self,
        entity: Type[EntityType],
        engine: GraphEngine,
        registry: Optional[ModelRegistry] = None,
        database: Optional[str] = None
    ):
        if not (isinstance(entity, type) and issubclass(entity, GraphEntity)):
            raise TypeError(f"Repository needs a GraphEntity subclass, got {entity!r}")
        self.entity = entity
        self.engine = engine
        self.registry = registry if registry is not None else default_registry
        self.database = database
        self.mapper = EntityMapper(self.registry)

    @property
    def label(self) -> str:
        return self.entity.graph_label()

    # =============================================================================
    # SESSION HELPERS
    # =============================================================================

    async def read(self, query: str, params: Dict[str, Any]) -> List[RawRecord]:
        """Run a read query in a fresh session."""
        self.registry.freeze()
        async with self.engine.session(database=self.database, read_only=True) as session:
            return await session.read(query, params)

    async def write(self, query: str, params: Dict[str, Any]) -> List[RawRecord]:
        """Run a write query in a fresh session."""
        self.registry.freeze()
        async with self.engine.session(database=self.database) as session:
            return await session.write(query, params)

    # =============================================================================
    # CREATE / UPDATE
    # =============================================================================

    async def create(self, entity: EntityType, relation: Optional[RelationOptions] = None) -> EntityType:
        """
        Create a node from every scalar field of ``entity``.

        With ``relation``, the related node is merged on ``field``/``value``
        (or matched by element id) and linked in the same statement. The
        stored node is mapped back onto ``entity``: its engine-assigned
        element id and any property values the database holds.

        Raises:
            GraphConnectionError, QueryError, MappingError
            NotFoundError: The relation targets an element id that does not exist
        """
        self._check_instance(entity)
        builder = QueryBuilder()
        relation = relation if relation is not None and relation.is_complete else None

        by_element_id = relation is not None and self._targets_element_id(relation)
        if by_element_id:
            self._match_related(builder, relation)

        builder.create(node_pattern(ROOT_ALIAS, self.label, "props"))
        builder.param("props", entity.graph_properties())

        if relation is not None:
            if not by_element_id:
                self._merge_related(builder, relation)
            builder.create(self._link_pattern(relation))

        query, params = builder.return_(ROOT_ALIAS).build()
        records = await self.write(query, params)

        if not records and by_element_id:
            raise NotFoundError(
                f"Cannot create {self.label}: related {relation.label} with element id "
                f"{relation.value!r} not found"
            )
        node = records[0].get(ROOT_ALIAS) if records else None
        if not isinstance(node, RawNode):
            raise MappingError(f"CREATE for {self.label} did not return a node")

        self.mapper.refresh(entity, node)
        logger.debug("Created %s %s", self.label, node.element_id)
        return entity

    async def update(self, entity: EntityType, relation: Optional[RelationOptions] = None) -> EntityType:
        """
        Rewrite every scalar field of the node matching ``entity``'s element id.

        A missing node is not an error: the statement simply matches nothing
        and ``entity`` comes back unchanged.
        """
        self._check_instance(entity)
        builder = match_entity(QueryBuilder(), self.entity, ELEMENT_ID, entity.element_id(), param="element_id")
        builder.set(f"{ROOT_ALIAS} += $props").param("props", entity.graph_properties())

        if relation is not None and relation.is_complete:
            if self._targets_element_id(relation):
                builder.with_(ROOT_ALIAS)
                self._match_related(builder, relation)
            else:
                self._merge_related(builder, relation)
            builder.create(self._link_pattern(relation))

        query, params = builder.build()
        await self.write(query, params)
        return entity

    # =============================================================================
    # READ
    # =============================================================================

    def find(self, field_name: str, value: Any) -> FindQuery[EntityType]:
        """Deferred single-entity read; call ``await ...populate(depth, limit)``."""
        return FindQuery(self, field_name, value)

    def find_all(self, field_name: Optional[str] = None, value: Any = None) -> FindAllQuery[EntityType]:
        """Deferred multi-entity read; without a field every node of the label matches."""
        return FindAllQuery(self, field_name, value)

    # =============================================================================
    # DELETE
    # =============================================================================

    async def delete(self, field_name: str, value: Any, detach: bool = False) -> EntityType:
        """
        Delete the node(s) matching ``field_name``/``value``.

        The node is read first and returned in its pre-deletion state. Without
        ``detach`` a node that still has relationships cannot be deleted and
        the engine's error surfaces as QueryError.

        Raises:
            NotFoundError: Nothing matched
            QueryError: The engine refused the delete
        """
        self.registry.freeze()
        lookup = match_entity(QueryBuilder(), self.entity, field_name, value)
        read_query, params = lookup.return_(ROOT_ALIAS).limit(1).build()

        removal = match_entity(QueryBuilder(), self.entity, field_name, value)
        delete_query, _ = removal.delete(ROOT_ALIAS, detach=detach).build()

        async with self.engine.session(database=self.database) as session:
            records = await session.read(read_query, params)
            node = records[0].get(ROOT_ALIAS) if records else None
            if not isinstance(node, RawNode):
                raise NotFoundError(f"No {self.label} found with {field_name} = {value!r} to delete")

            deleted = self.mapper.map_raw(node, self.entity)
            await session.write(delete_query, params)

        logger.debug("Deleted %s %s (detach=%s)", self.label, node.element_id, detach)
        return deleted

    # =============================================================================
    # INTERNALS
    # =============================================================================

    def _check_instance(self, entity: Any) -> None:
        if not isinstance(entity, self.entity):
            raise TypeError(f"Expected {self.entity.__name__}, got {type(entity).__name__}")

    def _targets_element_id(self, relation: RelationOptions) -> bool:
        if relation.field == ELEMENT_ID:
            return True
        related = self.registry.get(relation.label)
        return related is not None and relation.field == related.graph_schema().id_field

    def _related_key(self, relation: RelationOptions) -> str:
        """Property key on the related node, translating entity field names when the label is registered."""
        related = self.registry.get(relation.label)
        if related is not None:
            schema = related.graph_schema()
            if relation.field not in schema.property_keys():
                return schema.key_for_field(relation.field) or relation.field
        return relation.field

    def _match_related(self, builder: QueryBuilder, relation: RelationOptions) -> None:
        builder.match(node_pattern(RELATED_ALIAS, relation.label))
        builder.where(f"elementId({RELATED_ALIAS}) = $related_value")
        builder.param("related_value", relation.value)

    def _merge_related(self, builder: QueryBuilder, relation: RelationOptions) -> None:
        key = check_identifier(self._related_key(relation), "property key")
        label = check_identifier(relation.label, "label")
        builder.merge(f"({RELATED_ALIAS}:{label} {{{key}: $related_value}})")
        builder.param("related_value", relation.value)

    def _link_pattern(self, relation: RelationOptions) -> str:
        return relationship_pattern(f"({ROOT_ALIAS})", relation.rel_type, relation.direction, f"({RELATED_ALIAS})")

    def __repr__(self) -> str:
        return f"Repository({self.entity.__name__}, label={self.label!r})"
