# tests/orm/test_entities.py
"""
Tests for GraphEntity schemas and field tags.
"""

import pytest
from typing import Annotated, List, Optional
from pydantic import ValidationError

from neogm import GraphEntity, Property, Relationship, graph_entity
from neogm.exceptions import MappingError
from neogm.orm.entities import PropertyDescriptor, clear_schema_cache
from neogm.orm.fields import EITHER, INCOMING, OUTGOING, parse_relationship_tag, is_valid_direction
from tests.domain import Admin, Author, Book, Continent, Ocean, Person, User, World


class TestFieldTags:
    """Relationship and Property tag parsing."""

    def test_compact_relationship_tag(self):
        tag = Relationship("OWNS,->")
        assert tag.rel_type == "OWNS"
        assert tag.direction == OUTGOING
        assert tag.tag == "OWNS,->"

    def test_separate_arguments(self):
        tag = Relationship("WROTE", "<-")
        assert tag.direction == INCOMING
        assert tag == Relationship("WROTE,<-")
        assert hash(tag) == hash(Relationship("WROTE,<-"))

    def test_whitespace_is_trimmed(self):
        assert parse_relationship_tag(" HAS , <-> ") == ("HAS", "<->")
        assert Relationship(" HAS , <-> ").direction == EITHER

    @pytest.mark.parametrize("tag", ["OWNS", "OWNS,->,x", "OWNS,=>", "bad type,->", ",->"])
    def test_invalid_relationship_tags(self, tag):
        with pytest.raises(ValueError):
            Relationship(tag)

    def test_direction_helper(self):
        assert is_valid_direction("->")
        assert not is_valid_direction("-->")

    def test_empty_property_key_rejected(self):
        with pytest.raises(ValueError):
            Property("")


class TestEntitySchema:
    """Schema reflection from annotated fields."""

    def test_user_schema(self):
        schema = User.graph_schema()

        assert schema.label == "User"
        assert schema.id_field == "id"
        assert schema.properties == (
            PropertyDescriptor("username", "username"),
            PropertyDescriptor("user_id", "userID"),
        )
        assert len(schema.relationships) == 1

        worlds = schema.relationship("worlds")
        assert worlds.rel_type == "OWNS"
        assert worlds.direction == OUTGOING
        assert worlds.target is World
        assert worlds.target_label == "World"

    def test_relationships_in_declaration_order(self):
        fields = [rel.field_name for rel in World.graph_schema().relationships]
        assert fields == ["continents", "oceans"]
        assert [rel.target for rel in World.graph_schema().relationships] == [Continent, Ocean]

    def test_key_translation(self):
        schema = User.graph_schema()
        assert schema.property_keys() == ["username", "userID"]
        assert schema.field_for_key("userID") == "user_id"
        assert schema.key_for_field("user_id") == "userID"
        assert schema.key_for_field("worlds") is None

    def test_schema_is_cached(self):
        assert World.graph_schema() is World.graph_schema()

    def test_clear_schema_cache(self):
        first = Ocean.graph_schema()
        clear_schema_cache()
        second = Ocean.graph_schema()
        assert first is not second
        assert first == second

    def test_self_reference(self):
        friends = Person.graph_schema().relationship("friends")
        assert friends.target is Person

    def test_mutual_reference(self):
        assert Author.graph_schema().relationship("books").target is Book
        authors = Book.graph_schema().relationship("authors")
        assert authors.target is Author
        assert authors.direction == INCOMING

    def test_subclass_label_and_inherited_fields(self):
        assert Admin.graph_label() == "Admin"
        schema = Admin.graph_schema()
        assert "userID" in schema.property_keys()
        assert "clearance" in schema.property_keys()
        assert schema.relationship("worlds").target is World
        # The parent keeps its own label
        assert User.graph_label() == "User"

    def test_non_list_relationship_rejected(self):
        class Broken(GraphEntity):
            world: Annotated[Optional[World], Relationship("OWNS,->")] = None

        with pytest.raises(MappingError, match="must be a List"):
            Broken.graph_schema()

    def test_relationship_to_non_entity_rejected(self):
        class Tagged(GraphEntity):
            tags: Annotated[List[str], Relationship("TAGGED,->")] = []

        with pytest.raises(MappingError, match="GraphEntity"):
            Tagged.graph_schema()

    def test_field_without_default_rejected(self):
        class Strict(GraphEntity):
            name: str

        with pytest.raises(MappingError, match="Strict.name needs a default"):
            Strict.graph_schema()

    def test_relationship_without_default_rejected(self):
        class Lonely(GraphEntity):
            worlds: Annotated[List[World], Relationship("OWNS,->")]

        with pytest.raises(MappingError, match="Lonely.worlds needs a default"):
            Lonely.graph_schema()

    def test_two_tags_on_one_field_rejected(self):
        class Confused(GraphEntity):
            name: Annotated[str, Property("name"), Property("title")] = ""

        with pytest.raises(MappingError):
            Confused.graph_schema()


class TestGraphEntityInstances:
    """Instance-level helpers."""

    def test_graph_properties_exclude_id_and_relationships(self):
        user = User(username="alice", user_id=7, worlds=[World(name="Ozia")])
        assert user.graph_properties() == {"username": "alice", "userID": 7}

    def test_element_id_round_trip(self):
        world = World(name="Ozia")
        assert world.element_id() is None

        world.set_element_id("4:abc:1")
        assert world.element_id() == "4:abc:1"
        assert world.id == "4:abc:1"
        assert "4:abc:1" in repr(world)

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            World(name="Ozia", colour="blue")

    def test_assignment_is_validated(self):
        world = World(name="Ozia")
        with pytest.raises(ValidationError):
            world.name = "x" * 101


class TestGraphEntityDecorator:
    """@graph_entity label override."""

    def test_label_override(self):
        @graph_entity(label="Human")
        class Citizen(GraphEntity):
            name: str = ""

        assert Citizen.graph_label() == "Human"
        assert Citizen.graph_schema().label == "Human"

    def test_class_keyword_label(self):
        class Citizen(GraphEntity, label="Resident"):
            name: str = ""

        assert Citizen.graph_label() == "Resident"

    def test_bare_decorator_keeps_class_name(self):
        @graph_entity
        class Citizen(GraphEntity):
            name: str = ""

        assert Citizen.graph_label() == "Citizen"

    def test_rejects_non_entities(self):
        with pytest.raises(TypeError):
            @graph_entity(label="Nope")
            class NotAnEntity:
                pass
