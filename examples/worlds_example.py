#!/usr/bin/env python3
r"""
neogm World-Building Example

Creates a user who owns a world with a continent and an ocean, then reads the
whole structure back with a single populate call.

Reads connection settings from NEO4J_URI / NEO4J_USER / NEO4J_PASSWORD
(or a .env file).
"""

import asyncio
import logging
from typing import Annotated, List

from pydantic import Field

from neogm import (
    GraphEntity,
    ModelRegistry,
    NotFoundError,
    OGMError,
    Property,
    Relationship,
    RelationOptions,
    Repository,
    UNBOUNDED,
    create_graph_engine_from_settings,
)


# =============================================================================
# DEFINE ENTITIES
# =============================================================================

class Ocean(GraphEntity):
    name: str = Field(default="", max_length=100)
    description: str = ""


class Continent(GraphEntity):
    name: str = Field(default="", max_length=100)
    description: str = ""


class World(GraphEntity):
    """A world and the land and sea it is made of."""

    name: str = Field(default="", max_length=100)
    type: str = ""
    continents: Annotated[List[Continent], Relationship("HAS,->")] = []
    oceans: Annotated[List[Ocean], Relationship("HAS,->")] = []


class User(GraphEntity):
    username: str = ""
    user_id: Annotated[int, Property("userID")] = 0
    worlds: Annotated[List[World], Relationship("OWNS,->")] = []


registry = ModelRegistry({
    "User": User,
    "World": World,
    "Continent": Continent,
    "Ocean": Ocean,
})


# =============================================================================
# DEMO
# =============================================================================

async def demonstrate_populate():
    async with create_graph_engine_from_settings() as engine:
        users = Repository(User, engine, registry)
        worlds = Repository(World, engine, registry)
        continents = Repository(Continent, engine, registry)
        oceans = Repository(Ocean, engine, registry)

        print("1. Creating entities")
        await users.create(User(username="alice", user_id=7))
        ozia = await worlds.create(
            World(name="Ozia", type="fantasy"),
            RelationOptions(field="userID", value=7, label="User", rel_type="OWNS", direction="<-"),
        )
        owned_by_ozia = RelationOptions(
            field="elementID", value=ozia.id, label="World", rel_type="HAS", direction="<-"
        )
        await continents.create(Continent(name="Ereth"), owned_by_ozia)
        await oceans.create(Ocean(name="Sundering Sea"), owned_by_ozia)
        print(f"   created world {ozia.name} ({ozia.id})")

        print("2. Populating one hop")
        alice = await users.find("userID", 7).populate(depth=1)
        print(f"   {alice.username} owns {[w.name for w in alice.worlds]}")

        print("3. Populating everything reachable")
        alice = await users.find("userID", 7).populate(depth=UNBOUNDED)
        for world in alice.worlds:
            print(f"   {world.name}: continents={[c.name for c in world.continents]} "
                  f"oceans={[o.name for o in world.oceans]}")

        print("4. Cleaning up")
        for ocean in alice.worlds[0].oceans:
            await oceans.delete("elementID", ocean.id, detach=True)
        for continent in alice.worlds[0].continents:
            await continents.delete("elementID", continent.id, detach=True)
        await worlds.delete("elementID", ozia.id, detach=True)
        await users.delete("userID", 7, detach=True)

        try:
            await users.find("userID", 7).populate()
        except NotFoundError as e:
            print(f"   gone: {e}")


async def main():
    logging.basicConfig(level=logging.INFO)
    try:
        await demonstrate_populate()
        return True
    except OGMError as e:
        print(f"Demo failed: {e}")
        return False


if __name__ == "__main__":
    success = asyncio.run(main())
    print("Demo completed." if success else "Demo encountered errors.")
