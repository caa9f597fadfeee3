# tests/test_integrations.py
"""
Integration tests against a live Neo4j instance.

Skipped unless ``NEO4J_URI`` is set (``NEO4J_USER``, ``NEO4J_PASSWORD`` and
``NEO4J_DATABASE`` are read the same way). Every test works on nodes tagged
with a per-test prefix and removes them afterwards.
"""

import os
import uuid

import pytest
import pytest_asyncio

from neogm import (
    MultipleResultsError,
    NotFoundError,
    QueryError,
    RelationOptions,
    Repository,
    UNBOUNDED,
    create_graph_engine_from_settings,
)
from tests.domain import Continent, User, World, make_registry


pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not os.environ.get("NEO4J_URI"), reason="NEO4J_URI not set"),
]


@pytest_asyncio.fixture
async def engine():
    engine = create_graph_engine_from_settings()
    await engine.connect()
    yield engine
    await engine.close()


@pytest_asyncio.fixture
async def prefix(engine):
    """Unique name prefix; matching nodes are detach-deleted after the test."""
    token = f"it_{uuid.uuid4().hex[:12]}_"
    yield token
    async with engine.session() as session:
        await session.write(
            "MATCH (n) WHERE n.name STARTS WITH $prefix OR n.username STARTS WITH $prefix "
            "DETACH DELETE n",
            {"prefix": token},
        )


@pytest.fixture
def registry():
    return make_registry()


@pytest.fixture
def user_id():
    return uuid.uuid4().int % 1_000_000_000


@pytest.mark.asyncio
class TestRepositoryRoundTrip:
    """Create, populate, update and delete against the real engine."""

    async def test_create_and_populate(self, engine, registry, prefix, user_id):
        users = Repository(User, engine, registry)
        worlds = Repository(World, engine, registry)
        continents = Repository(Continent, engine, registry)

        alice = await users.create(User(username=f"{prefix}alice", user_id=user_id))
        assert alice.id

        ozia = await worlds.create(
            World(name=f"{prefix}Ozia", type="fantasy"),
            RelationOptions(field="userID", value=user_id, label="User", rel_type="OWNS", direction="<-"),
        )
        await continents.create(
            Continent(name=f"{prefix}East"),
            RelationOptions(field="elementID", value=ozia.id, label="World", rel_type="HAS", direction="<-"),
        )

        found = await users.find("userID", user_id).populate(depth=1)
        assert found.id == alice.id
        assert [w.name for w in found.worlds] == [f"{prefix}Ozia"]
        assert found.worlds[0].continents == []

        deep = await users.find("userID", user_id).populate(depth=UNBOUNDED)
        assert [c.name for c in deep.worlds[0].continents] == [f"{prefix}East"]

    async def test_relation_merge_creates_missing_target(self, engine, registry, prefix, user_id):
        worlds = Repository(World, engine, registry)
        users = Repository(User, engine, registry)

        await worlds.create(
            World(name=f"{prefix}Arda"),
            RelationOptions(field="userID", value=user_id, label="User", rel_type="OWNS", direction="<-"),
        )

        merged = await users.find("userID", user_id).populate()
        assert [w.name for w in merged.worlds] == [f"{prefix}Arda"]
        # Tag the merged user so the cleanup fixture finds it
        merged.username = f"{prefix}merged"
        await users.update(merged)

    async def test_update_rewrites_properties(self, engine, registry, prefix):
        worlds = Repository(World, engine, registry)
        ozia = await worlds.create(World(name=f"{prefix}Ozia", description="old"))

        ozia.description = "new"
        await worlds.update(ozia)

        found = await worlds.find("elementID", ozia.id).populate()
        assert found.description == "new"

    async def test_update_nonexistent_is_not_an_error(self, engine, registry, prefix):
        worlds = Repository(World, engine, registry)
        ghost = World(id="4:00000000-0000-0000-0000-000000000000:999999999", name=f"{prefix}Ghost")

        assert await worlds.update(ghost) is ghost
        assert await worlds.find_all("name", f"{prefix}Ghost").populate() == []

    async def test_find_all_with_limit(self, engine, registry, prefix):
        worlds = Repository(World, engine, registry)
        for index in range(3):
            await worlds.create(World(name=f"{prefix}World", type=str(index)))

        limited = await worlds.find_all("name", f"{prefix}World").populate(limit=2)
        assert len(limited) == 2

        with pytest.raises(MultipleResultsError):
            await worlds.find("name", f"{prefix}World").populate()


@pytest.mark.asyncio
class TestDelete:
    async def test_delete_without_detach_keeps_linked_node(self, engine, registry, prefix, user_id):
        users = Repository(User, engine, registry)
        worlds = Repository(World, engine, registry)

        await users.create(User(username=f"{prefix}bob", user_id=user_id))
        await worlds.create(
            World(name=f"{prefix}Ozia"),
            RelationOptions(field="userID", value=user_id, label="User", rel_type="OWNS", direction="<-"),
        )

        with pytest.raises(QueryError):
            await users.delete("userID", user_id)
        assert (await users.find("userID", user_id).populate()).username == f"{prefix}bob"

        deleted = await users.delete("userID", user_id, detach=True)
        assert deleted.username == f"{prefix}bob"

        with pytest.raises(NotFoundError):
            await users.find("userID", user_id).populate()

    async def test_delete_world_by_element_id(self, engine, registry, prefix, user_id):
        users = Repository(User, engine, registry)
        worlds = Repository(World, engine, registry)

        await users.create(User(username=f"{prefix}carol", user_id=user_id))
        ozia = await worlds.create(
            World(name=f"{prefix}Ozia"),
            RelationOptions(field="userID", value=user_id, label="User", rel_type="OWNS", direction="<-"),
        )

        with pytest.raises(QueryError):
            await worlds.delete("elementID", ozia.id)
        assert (await worlds.find("elementID", ozia.id).populate()).name == f"{prefix}Ozia"

        deleted = await worlds.delete("elementID", ozia.id, detach=True)
        assert deleted.id == ozia.id

        with pytest.raises(NotFoundError):
            await worlds.find("elementID", ozia.id).populate()
        assert (await users.find("userID", user_id).populate()).worlds == []

    async def test_delete_missing(self, engine, registry, prefix):
        worlds = Repository(World, engine, registry)
        with pytest.raises(NotFoundError):
            await worlds.delete("name", f"{prefix}nothing")
