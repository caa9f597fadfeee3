# tests/conftest.py
from collections import deque
from contextlib import asynccontextmanager
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

import pytest

from neogm import RawRecord
from tests.domain import make_registry


Response = Union[List[RawRecord], Exception]


class FakeSession:
    """Records every statement and answers with the engine's scripted responses."""

    def __init__(self, engine: "FakeEngine", read_only: bool):
        self.engine = engine
        self.read_only = read_only

    async def read(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[RawRecord]:
        return self.engine._answer("read", query, params or {})

    async def write(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[RawRecord]:
        return self.engine._answer("write", query, params or {})


class FakeEngine:
    """
    Stand-in for GraphEngine exposing the same ``session()`` seam.

    Queue one response per statement: a list of RawRecords, or an exception
    to raise. Statements without a queued response return no rows.
    """

    def __init__(self):
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.responses: Deque[Response] = deque()
        self.sessions_opened = 0
        self.sessions_closed = 0
        self.databases: List[Optional[str]] = []

    def queue(self, *responses: Response) -> "FakeEngine":
        self.responses.extend(responses)
        return self

    def _answer(self, mode: str, query: str, params: Dict[str, Any]) -> List[RawRecord]:
        self.calls.append((mode, query, params))
        if not self.responses:
            return []
        response = self.responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response

    @asynccontextmanager
    async def session(self, database: Optional[str] = None, read_only: bool = False):
        self.sessions_opened += 1
        self.databases.append(database)
        try:
            yield FakeSession(self, read_only)
        finally:
            self.sessions_closed += 1

    @property
    def queries(self) -> List[str]:
        return [query for _, query, _ in self.calls]

    @property
    def last_query(self) -> str:
        return self.calls[-1][1]

    @property
    def last_params(self) -> Dict[str, Any]:
        return self.calls[-1][2]


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def registry():
    return make_registry()
