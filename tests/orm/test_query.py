# tests/orm/test_query.py

import pytest

from neogm.exceptions import InvalidIdentifierError, QueryError
from neogm.orm.query import QueryBuilder, check_identifier, node_pattern, relationship_pattern


class TestQueryBuilder:
    def test_clauses_joined_in_call_order(self):
        query, params = (
            QueryBuilder()
            .match("(u:User)")
            .where("u.username = $username")
            .param("username", "alice")
            .optional_match("(u)-[:OWNS]->(w:World)")
            .return_("u, w")
            .build()
        )
        assert query == (
            "MATCH (u:User)\n"
            "WHERE u.username = $username\n"
            "OPTIONAL MATCH (u)-[:OWNS]->(w:World)\n"
            "RETURN u, w"
        )
        assert params == {"username": "alice"}

    def test_no_reordering(self):
        query, _ = QueryBuilder().return_("n").match("(n)").build()
        assert query == "RETURN n\nMATCH (n)"

    def test_write_clauses(self):
        builder = (
            QueryBuilder()
            .merge("(r:User {userID: $related_value})")
            .create("(n:World $props)")
            .set("n += $props")
            .with_("n")
        )
        assert builder.clauses == [
            "MERGE (r:User {userID: $related_value})",
            "CREATE (n:World $props)",
            "SET n += $props",
            "WITH n",
        ]
        assert len(builder) == 4

    def test_delete_and_detach_delete(self):
        assert QueryBuilder().delete("n").build()[0] == "DELETE n"
        assert QueryBuilder().delete("n", detach=True).build()[0] == "DETACH DELETE n"

    def test_limit_is_a_parameter(self):
        query, params = QueryBuilder().match("(n:User)").with_("n").limit(5).build()
        assert query.endswith("WITH n\nLIMIT $limit")
        assert params == {"limit": 5}

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            QueryBuilder().limit(-1)

    def test_empty_clause_rejected(self):
        with pytest.raises(ValueError):
            QueryBuilder().match("   ")

    def test_params_merge(self):
        _, params = QueryBuilder().params(a=1, b="two").param("a", 3).build()
        assert params == {"a": 3, "b": "two"}

    def test_build_returns_a_copy(self):
        builder = QueryBuilder().param("x", 1)
        _, params = builder.build()
        params["x"] = 99
        assert builder.build()[1] == {"x": 1}

    def test_raw_fragment(self):
        query, _ = QueryBuilder().match("(n)").raw("  ").raw("RETURN count(n) AS total").build()
        assert query == "MATCH (n)\nRETURN count(n) AS total"

    def test_empty_builder(self):
        assert QueryBuilder().build() == ("", {})


class TestPatterns:
    def test_node_pattern(self):
        assert node_pattern("n") == "(n)"
        assert node_pattern("n", "World") == "(n:World)"
        assert node_pattern("n", "World", "props") == "(n:World $props)"

    @pytest.mark.parametrize("direction,expected", [
        ("->", "(n)-[:OWNS]->(n_0:World)"),
        ("<-", "(n)<-[:OWNS]-(n_0:World)"),
        ("<->", "(n)-[:OWNS]-(n_0:World)"),
    ])
    def test_relationship_pattern(self, direction, expected):
        assert relationship_pattern("(n)", "OWNS", direction, "(n_0:World)") == expected

    def test_bad_direction(self):
        with pytest.raises(InvalidIdentifierError):
            relationship_pattern("(n)", "OWNS", "=>", "(m)")


class TestIdentifiers:
    @pytest.mark.parametrize("name", ["User", "userID", "_private", "HAS_2"])
    def test_valid(self, name):
        assert check_identifier(name) == name

    @pytest.mark.parametrize("name", ["", "2fast", "bad name", "x`) DETACH DELETE (y", "a-b", None])
    def test_invalid(self, name):
        with pytest.raises(InvalidIdentifierError):
            check_identifier(name, "label")

    def test_invalid_identifier_is_query_error(self):
        with pytest.raises(QueryError, match="Invalid label"):
            node_pattern("n", "Bad Label")

    def test_invalid_parameter_name(self):
        with pytest.raises(InvalidIdentifierError):
            QueryBuilder().param("not valid", 1)
