# src/neogm/__init__.py
r"""
neogm - Object-Graph Mapping for Neo4j

neogm maps pydantic entities onto a Neo4j property graph:
- Tagged entity fields (properties, element id, relationships)
- A label registry resolving result nodes to entity classes
- Fluent Cypher composition with named parameters
- Depth-bounded relationship population from a single query
- Reconstruction of nested entities from flat, denormalized rows

Example:
    ```python
    from typing import Annotated, List
    from neogm import (
        GraphEntity, ModelRegistry, Property, Relationship, RelationOptions,
        Repository, create_graph_engine_from_settings,
    )

    class World(GraphEntity):
        name: str = ""

    class User(GraphEntity):
        username: str = ""
        user_id: Annotated[int, Property("userID")] = 0
        worlds: Annotated[List[World], Relationship("OWNS,->")] = []

    registry = ModelRegistry({"User": User, "World": World})

    async with create_graph_engine_from_settings() as engine:
        users = Repository(User, engine, registry)
        worlds = Repository(World, engine, registry)

        await users.create(User(username="alice", user_id=7))
        await worlds.create(
            World(name="Ozia"),
            RelationOptions(field="userID", value=7, label="User", rel_type="OWNS", direction="<-"),
        )

        alice = await users.find("userID", 7).populate(depth=1)
        print([world.name for world in alice.worlds])  # ['Ozia']
    ```
"""

import logging

# Core reconstruction
from neogm.core.raw import RawNode, RawRecord
from neogm.core.tree_node import TreeNode
from neogm.core.node_tree import NodeTree

# ORM system
from neogm.orm.entities import GraphEntity, graph_entity
from neogm.orm.fields import ElementId, Property, Relationship
from neogm.orm.registry import ModelRegistry, default_registry, register_model, resolve_type
from neogm.orm.query import QueryBuilder
from neogm.orm.mapping import EntityMapper, reconstruct
from neogm.orm.populate import ELEMENT_ID, UNBOUNDED, FindAllQuery, FindQuery, PopulateQuery
from neogm.orm.repository import RelationOptions, Repository

# Engine and configuration
from neogm.orm.engine import GraphEngine, create_graph_engine, create_graph_engine_from_settings
from neogm.config import Neo4jSettings

# Errors
from neogm.exceptions import (
    GraphConnectionError,
    InvalidIdentifierError,
    MappingError,
    ModelRegistrationError,
    MultipleResultsError,
    NotFoundError,
    OGMError,
    QueryError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.3.0"

__all__ = [
    # Core classes
    "RawNode",
    "RawRecord",
    "TreeNode",
    "NodeTree",

    # ORM classes
    "GraphEntity",
    "graph_entity",
    "ElementId",
    "Property",
    "Relationship",
    "ModelRegistry",
    "default_registry",
    "register_model",
    "resolve_type",
    "QueryBuilder",
    "EntityMapper",
    "reconstruct",
    "PopulateQuery",
    "FindQuery",
    "FindAllQuery",
    "ELEMENT_ID",
    "UNBOUNDED",
    "RelationOptions",
    "Repository",

    # Engine
    "GraphEngine",
    "create_graph_engine",
    "create_graph_engine_from_settings",
    "Neo4jSettings",

    # Errors
    "OGMError",
    "GraphConnectionError",
    "QueryError",
    "InvalidIdentifierError",
    "MappingError",
    "NotFoundError",
    "MultipleResultsError",
    "ModelRegistrationError",

    # Version
    "__version__",
]
