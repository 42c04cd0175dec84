"""
Shared fixtures for the profile dashboard tests.

``FakeExecutor`` stands in for the GraphQL service: responses are keyed by the
query document from ``profile_dashboard.queries``.
"""

import asyncio
import base64
import json
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pytest

from profile_dashboard import queries
from profile_dashboard.configuration import DashboardConfig
from profile_dashboard.repository import ProfileRepository
from profile_dashboard.session import SessionStore


class FakeExecutor:
    """Replays canned responses; a response that is an exception gets raised."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None, delays: Optional[Dict[str, float]] = None):
        self.responses: Dict[str, Any] = dict(responses or {})
        self.delays: Dict[str, float] = dict(delays or {})
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    async def execute_query(self, query: str, variables: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        self.calls.append((query, dict(variables or {})))
        delay = self.delays.get(query)
        if delay:
            await asyncio.sleep(delay)
        response = self.responses.get(query, {})
        if isinstance(response, BaseException):
            raise response
        return response

    def count(self, query: str) -> int:
        return sum(1 for called, _ in self.calls if called == query)


def make_token(claims: Dict[str, Any]) -> str:
    """Unsigned JWT carrying ``claims``; only the payload segment matters here."""

    def _segment(value: Dict[str, Any]) -> str:
        return base64.urlsafe_b64encode(json.dumps(value).encode("utf-8")).decode("ascii").rstrip("=")

    header = _segment({"alg": "HS256", "typ": "JWT"})
    return f"{header}.{_segment(claims)}.signature"


TRANSACTIONS = [
    {"amount": 100, "createdAt": "2024-01-01T09:00:00Z", "path": "/school/div-01/a"},
    {"amount": 50, "createdAt": "2024-01-01T18:30:00Z", "path": "/school/div-01/b"},
    {"amount": 200, "createdAt": "2024-01-03T12:00:00Z", "path": "/school/div-01/a"},
]

AUDITS = [{"grade": 1.0}, {"grade": 0.5}, {"grade": 1.0}]

PROGRESS = [
    {
        "objectId": 5,
        "grade": 0.8,
        "path": "/school/div-01/graphql",
        "updatedAt": "2024-02-01T10:00:00Z",
        "object": {"id": 5, "name": "graphql", "type": "project"},
    },
]

RESULTS = [
    {
        "objectId": 5,
        "grade": 1.0,
        "path": "/school/div-01/graphql",
        "updatedAt": "2024-02-05T10:00:00Z",
        "object": {"id": 5, "name": "graphql", "type": "project"},
    },
    {
        "objectId": 7,
        "grade": 1.2,
        "path": "/school/div-01/ascii-art",
        "updatedAt": "2024-01-10T10:00:00Z",
        "object": {"id": 7, "name": "ascii-art", "type": "project"},
    },
]


def full_responses() -> Dict[str, Any]:
    return {
        queries.USER_INFO: {"user": [{"id": 42, "login": "learner"}]},
        queries.TOTAL_XP: {"transaction": TRANSACTIONS},
        queries.XP_OVER_TIME: {"transaction": TRANSACTIONS},
        queries.XP_BY_PROJECT: {"transaction": TRANSACTIONS},
        queries.AUDIT_RATIO: {"audit": AUDITS},
        queries.COMPLETED_PROJECTS: {"progress": PROGRESS, "result": RESULTS},
        queries.PASS_FAIL_RESULTS: {"result": RESULTS},
    }


@pytest.fixture
def config() -> DashboardConfig:
    return DashboardConfig()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor(full_responses())


@pytest.fixture
def session() -> SessionStore:
    return SessionStore(token=make_token({"sub": "42"}))


@pytest.fixture
def repository(executor: FakeExecutor, session: SessionStore, config: DashboardConfig) -> ProfileRepository:
    return ProfileRepository(executor, session, config)
