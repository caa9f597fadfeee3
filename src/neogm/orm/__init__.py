# src/neogm/orm/__init__.py
"""
neogm ORM Module

Entity schemas, the label registry, query composition, population and the
repository operations built on top of them.
"""

from neogm.orm.entities import (
    GraphEntity,
    graph_entity,
    EntitySchema,
    PropertyDescriptor,
    RelationshipDescriptor,
)
from neogm.orm.fields import ElementId, Property, Relationship
from neogm.orm.registry import ModelRegistry, default_registry, register_model, resolve_type
from neogm.orm.query import QueryBuilder
from neogm.orm.mapping import EntityMapper, reconstruct
from neogm.orm.populate import FindAllQuery, FindQuery, PopulateQuery, plan_traversals
from neogm.orm.repository import RelationOptions, Repository

from neogm.orm.engine import (
    GraphEngine,
    GraphSession,
    create_graph_engine,
    create_graph_engine_from_settings,
)

__all__ = [
    # Entity system
    "GraphEntity",
    "graph_entity",
    "EntitySchema",
    "PropertyDescriptor",
    "RelationshipDescriptor",
    "ElementId",
    "Property",
    "Relationship",

    # Registry
    "ModelRegistry",
    "default_registry",
    "register_model",
    "resolve_type",

    # Queries
    "QueryBuilder",
    "PopulateQuery",
    "FindQuery",
    "FindAllQuery",
    "plan_traversals",
    "EntityMapper",
    "reconstruct",

    # Repository
    "RelationOptions",
    "Repository",

    # Engine
    "GraphEngine",
    "GraphSession",
    "create_graph_engine",
    "create_graph_engine_from_settings",
]
