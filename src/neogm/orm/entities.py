# src/neogm/orm/entities.py
"""
neogm GraphEntity - Pydantic V2 entities with a cached graph schema

Entities are plain pydantic models. They do not talk to the database
themselves; a ``Repository`` is composed with an entity class for that. What
an entity does provide is ``graph_schema()``: a description of its scalar
properties, identifier and relationship fields, computed once per class.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Annotated,
    Any,
    ClassVar,
    Dict,
    ForwardRef,
    List,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)
import weakref

from pydantic import BaseModel, ConfigDict, PydanticUndefinedAnnotation
from pydantic.fields import FieldInfo

from neogm.exceptions import MappingError
from neogm.orm.fields import ElementId, FieldTag, Property, Relationship


EntityType = TypeVar('EntityType', bound='GraphEntity')


# =============================================================================
# SCHEMA DESCRIPTORS
# =============================================================================

@dataclass(frozen=True)
class PropertyDescriptor:
    """Scalar field <-> graph property key."""
    field_name: str
    key: str


@dataclass(frozen=True)
class RelationshipDescriptor:
    """Sequence field <-> relationship type, direction and target entity."""
    field_name: str
    rel_type: str
    direction: str
    target: Type['GraphEntity']

    @property
    def target_label(self) -> str:
        return self.target.graph_label()


@dataclass(frozen=True)
class EntitySchema:
    """Everything the mapper needs to know about one entity class."""
    entity: Type['GraphEntity']
    label: str
    id_field: Optional[str]
    properties: Tuple[PropertyDescriptor, ...]
    relationships: Tuple[RelationshipDescriptor, ...]

    def property_keys(self) -> List[str]:
        return [prop.key for prop in self.properties]

    def field_for_key(self, key: str) -> Optional[str]:
        """Field name holding graph property ``key``."""
        for prop in self.properties:
            if prop.key == key:
                return prop.field_name
        return None

    def key_for_field(self, field_name: str) -> Optional[str]:
        for prop in self.properties:
            if prop.field_name == field_name:
                return prop.key
        return None

    def relationship(self, field_name: str) -> Optional[RelationshipDescriptor]:
        for rel in self.relationships:
            if rel.field_name == field_name:
                return rel
        return None


_schema_cache: "weakref.WeakKeyDictionary[type, EntitySchema]" = weakref.WeakKeyDictionary()


# =============================================================================
# ENTITY CONFIGURATION
# =============================================================================

class GraphEntityConfig:
    """Configuration for GraphEntity classes."""

    def __init__(self, graph_label: Optional[str] = None):
        self.graph_label = graph_label


class GraphEntityMeta(type(BaseModel)):
    """
    Metaclass for GraphEntity.

    Accepts a ``label`` class keyword (``class Person(GraphEntity,
    label="Human")``) and attaches a per-class configuration. Without one the
    class name is the label.
    """

    def __new__(
        mcs,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any
    ) -> GraphEntityMeta:
        label = kwargs.pop('label', None)
        entity_config = namespace.pop('_entity_config', None)

        cls = super().__new__(mcs, name, bases, namespace, **kwargs)

        if entity_config is None or label is not None:
            entity_config = GraphEntityConfig(graph_label=label or name)
        cls._entity_config = entity_config

        return cls


class GraphEntity(BaseModel, metaclass=GraphEntityMeta):
    """
    Base class for graph-mapped entities.

    Example:
        ```python
        class World(GraphEntity):
            name: str = ""
            continents: Annotated[List["Continent"], Relationship("HAS,->")] = []

        class User(GraphEntity):
            username: str = ""
            user_id: Annotated[int, Property("userID")] = 0
            worlds: Annotated[List[World], Relationship("OWNS,->")] = []
        ```
    """

    # Populated from the engine element id, never stored as a property
    id: Annotated[Optional[str], ElementId()] = None

    model_config = ConfigDict(
        validate_assignment=True,
        validate_default=True,
        use_enum_values=True,
        extra='forbid',
        arbitrary_types_allowed=True,
        ser_json_nan='null',
    )

    _entity_config: ClassVar[GraphEntityConfig]

    # =============================================================================
    # SCHEMA CAPABILITY
    # =============================================================================

    @classmethod
    def graph_label(cls) -> str:
        """Get the graph label for this entity class."""
        return cls._entity_config.graph_label

    @classmethod
    def graph_schema(cls) -> EntitySchema:
        """Schema for this class, computed on first use and cached."""
        schema = _schema_cache.get(cls)
        if schema is None:
            schema = build_schema(cls)
            _schema_cache[cls] = schema
        return schema

    # =============================================================================
    # SERIALIZATION
    # =============================================================================

    def graph_properties(self) -> Dict[str, Any]:
        """Property map for every scalar field, keyed by graph property key."""
        return {
            prop.key: getattr(self, prop.field_name)
            for prop in self.graph_schema().properties
        }

    def element_id(self) -> Optional[str]:
        id_field = self.graph_schema().id_field
        return getattr(self, id_field) if id_field else None

    def set_element_id(self, element_id: str) -> None:
        id_field = self.graph_schema().id_field
        if id_field is None:
            raise MappingError(f"{type(self).__name__} has no ElementId field")
        setattr(self, id_field, element_id)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.element_id()!r})"


# =============================================================================
# SCHEMA BUILDING
# =============================================================================

def _tag_of(field_info: FieldInfo) -> Optional[FieldTag]:
    tags = [meta for meta in field_info.metadata if isinstance(meta, FieldTag)]
    if len(tags) > 1:
        raise MappingError(f"Field carries more than one graph tag: {tags}")
    return tags[0] if tags else None


def _sequence_target(entity: type, field_name: str, annotation: Any) -> Type[GraphEntity]:
    """Target entity of a ``List[Target]`` relationship field."""
    if get_origin(annotation) not in (list, List):
        raise MappingError(
            f"Relationship field {entity.__name__}.{field_name} must be a List[...] "
            f"of entities, got {annotation!r}"
        )
    args = get_args(annotation)
    target = args[0] if args else None
    if isinstance(target, (str, ForwardRef)):
        target = _resolve_forward_target(entity, field_name)
    if not (isinstance(target, type) and issubclass(target, GraphEntity)):
        raise MappingError(
            f"Relationship field {entity.__name__}.{field_name} must hold GraphEntity "
            f"subclasses, got {target!r}"
        )
    return target


def _resolve_forward_target(entity: type, field_name: str) -> Any:
    """Evaluate a still-unresolved ``List["Target"]`` annotation against the defining module."""
    try:
        hints = get_type_hints(entity)
    except NameError as e:
        raise MappingError(f"Cannot resolve relationship target of {entity.__name__}.{field_name}: {e}") from e
    args = get_args(hints.get(field_name))
    return args[0] if args else None


def build_schema(entity: Type[GraphEntity]) -> EntitySchema:
    """
    Reflect an entity class into an EntitySchema.

    Forward references are resolved first, so mutually referencing entities
    work once every class in the cycle is defined. Every field needs a
    default: a node missing a property, or a node mapped without its
    relationships, falls back to it.
    """
    if not getattr(entity, '__pydantic_complete__', True):
        try:
            entity.model_rebuild()
        except PydanticUndefinedAnnotation as e:
            raise MappingError(f"Cannot resolve field types of {entity.__name__}: {e}") from e

    id_field: Optional[str] = None
    properties: List[PropertyDescriptor] = []
    relationships: List[RelationshipDescriptor] = []

    for field_name, field_info in entity.model_fields.items():
        if field_info.is_required():
            raise MappingError(
                f"Field {entity.__name__}.{field_name} needs a default so nodes without "
                f"that value can still be mapped"
            )
        tag = _tag_of(field_info)

        if isinstance(tag, ElementId):
            id_field = field_name
        elif isinstance(tag, Relationship):
            relationships.append(RelationshipDescriptor(
                field_name=field_name,
                rel_type=tag.rel_type,
                direction=tag.direction,
                target=_sequence_target(entity, field_name, field_info.annotation),
            ))
        else:
            key = tag.key if isinstance(tag, Property) and tag.key else field_name
            properties.append(PropertyDescriptor(field_name=field_name, key=key))

    return EntitySchema(
        entity=entity,
        label=entity.graph_label(),
        id_field=id_field,
        properties=tuple(properties),
        relationships=tuple(relationships),
    )


def clear_schema_cache() -> None:
    _schema_cache.clear()


# =============================================================================
# DECORATOR FUNCTION
# =============================================================================

def graph_entity(
    cls: Optional[Type] = None,
    *,
    label: Optional[str] = None
) -> Union[Type[GraphEntity], Any]:
    """
    Decorator overriding an entity's graph label.

    Example:
        ```python
        @graph_entity(label="Person")
        class User(GraphEntity):
            name: str = ""
        ```
    """
    def decorator(target_cls: Type) -> Type:
        if not (isinstance(target_cls, type) and issubclass(target_cls, GraphEntity)):
            raise TypeError("@graph_entity can only be applied to GraphEntity subclasses")

        target_cls._entity_config = GraphEntityConfig(graph_label=label or target_cls.__name__)
        _schema_cache.pop(target_cls, None)
        return target_cls

    if cls is None:
        return decorator
    return decorator(cls)
