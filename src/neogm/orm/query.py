# src/neogm/orm/query.py
"""
neogm Query Builder - fluent Cypher composition

Clause fragments are accumulated in call order and joined by ``build()``.
The builder does not reorder or validate clause sequences; composing a legal
statement is the caller's job.

Scalar values always travel as named parameters. Labels, relationship types
and property keys come from entity definitions, never from end users, and
are interpolated into the text after an identifier check.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
import re

from neogm.exceptions import InvalidIdentifierError
from neogm.orm.fields import EITHER, INCOMING, OUTGOING


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def check_identifier(name: str, kind: str = "identifier") -> str:
    """
    Return ``name`` if it is safe to interpolate into query text.

    Raises:
        InvalidIdentifierError: For anything but ``[A-Za-z_][A-Za-z0-9_]*``
    """
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise InvalidIdentifierError(f"Invalid {kind}: {name!r}")
    return name


def node_pattern(alias: str, label: Optional[str] = None, props_param: Optional[str] = None) -> str:
    """``(alias:Label $props)`` with the optional parts left out when absent."""
    text = check_identifier(alias, "alias")
    if label:
        text += f":{check_identifier(label, 'label')}"
    if props_param:
        text += f" ${check_identifier(props_param, 'parameter')}"
    return f"({text})"


def relationship_pattern(left: str, rel_type: str, direction: str, right: str) -> str:
    """
    Join two node patterns with a typed relationship.

    Args:
        left: Node pattern on the left, e.g. ``"(n)"``
        rel_type: Relationship type
        direction: ``"->"``, ``"<-"`` or ``"<->"`` (either direction)
        right: Node pattern on the right

    Returns:
        e.g. ``"(n)-[:OWNS]->(n_0:World)"``
    """
    rel = f"[:{check_identifier(rel_type, 'relationship type')}]"
    if direction == OUTGOING:
        return f"{left}-{rel}->{right}"
    if direction == INCOMING:
        return f"{left}<-{rel}-{right}"
    if direction == EITHER:
        return f"{left}-{rel}-{right}"
    raise InvalidIdentifierError(f"Invalid relationship direction: {direction!r}")


class QueryBuilder:
    """
    Accumulates Cypher clauses and named parameters.

    Example:
        ```python
        query, params = (
            QueryBuilder()
            .match("(u:User)")
            .where("u.username = $username")
            .param("username", "alice")
            .optional_match("(u)-[:OWNS]->(w:World)")
            .return_("u, w")
            .build()
        )
        ```
    """

    def __init__(self):
        self._clauses: List[str] = []
        self._params: Dict[str, Any] = {}

    def _add(self, keyword: str, body: str) -> QueryBuilder:
        body = body.strip()
        if not body:
            raise ValueError(f"{keyword} clause cannot be empty")
        self._clauses.append(f"{keyword} {body}")
        return self

    def match(self, pattern: str) -> QueryBuilder:
        """Add a MATCH clause."""
        return self._add("MATCH", pattern)

    def optional_match(self, pattern: str) -> QueryBuilder:
        """Add an OPTIONAL MATCH clause."""
        return self._add("OPTIONAL MATCH", pattern)

    def where(self, condition: str) -> QueryBuilder:
        return self._add("WHERE", condition)

    def create(self, pattern: str) -> QueryBuilder:
        """Add a CREATE clause."""
        return self._add("CREATE", pattern)

    def merge(self, pattern: str) -> QueryBuilder:
        return self._add("MERGE", pattern)

    def set(self, assignments: str) -> QueryBuilder:
        return self._add("SET", assignments)

    def delete(self, variables: str, detach: bool = False) -> QueryBuilder:
        return self._add("DETACH DELETE" if detach else "DELETE", variables)

    def with_(self, items: str) -> QueryBuilder:
        """Add a WITH clause."""
        return self._add("WITH", items)

    def return_(self, items: str) -> QueryBuilder:
        """Add a RETURN clause."""
        return self._add("RETURN", items)

    def limit(self, count: int, param_name: str = "limit") -> QueryBuilder:
        """Add ``LIMIT $<param_name>`` and bind the count as a parameter."""
        if count < 0:
            raise ValueError("LIMIT must not be negative")
        self.param(param_name, int(count))
        return self._add("LIMIT", f"${param_name}")

    def raw(self, fragment: str) -> QueryBuilder:
        """Append a fragment verbatim."""
        fragment = fragment.strip()
        if fragment:
            self._clauses.append(fragment)
        return self

    def param(self, key: str, value: Any) -> QueryBuilder:
        """Bind a named parameter."""
        self._params[check_identifier(key, "parameter")] = value
        return self

    def params(self, **values: Any) -> QueryBuilder:
        for key, value in values.items():
            self.param(key, value)
        return self

    @property
    def clauses(self) -> List[str]:
        return list(self._clauses)

    def build(self) -> Tuple[str, Dict[str, Any]]:
        """
        Produce the query text and a copy of the parameters.

        Returns:
            (query, params) tuple
        """
        return "\n".join(self._clauses), dict(self._params)

    def __len__(self) -> int:
        return len(self._clauses)

    def __repr__(self) -> str:
        return f"QueryBuilder(clauses={len(self._clauses)}, params={sorted(self._params)})"
