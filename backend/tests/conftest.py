"""
LECRM Backend — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the whole suite.
How:   Apps are built with create_app() around explicit Settings and a fake
       Supabase client factory, so no test touches the network or reads the
       developer's environment.

Fixture Hierarchy (all function-scoped):
    ├── settings / unconfigured_settings: explicit Settings objects
    ├── storage_client: MagicMock standing in for supabase.Client
    ├── app / test_client: FastAPI app + HTTPX AsyncClient over ASGITransport
    └── fake_supabase: in-memory PostgREST query builder for the scripts
"""

import os
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep test runs quiet and independent of a developer's shell
os.environ["LOG_LEVEL"] = "WARNING"

from lecrm.config import Settings  # noqa: E402
from lecrm.main import create_app  # noqa: E402

SIGNED_URL = (
    "https://abcd.supabase.co/storage/v1/object/sign/task-attachments/"
    "jobs/123/photo.jpg?token=test-token"
)

ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "https://lecrm-dev.vercel.app",
    "https://lecrm-stg.vercel.app",
    "https://lecrm.vercel.app",
]


# ══════════════════════════════════════════════════════════════════════════
# Settings
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        supabase_url="https://abcd.supabase.co",
        supabase_service_role_key="service-role-test-key",
        log_level="WARNING",
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(
        _env_file=None,
        supabase_url="",
        supabase_service_role_key="",
        log_level="WARNING",
    )


# ══════════════════════════════════════════════════════════════════════════
# Supabase storage doubles
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def storage_client():
    """
    MagicMock shaped like supabase.Client for the storage API.

    Usage:
        bucket = storage_client.storage.from_.return_value
        bucket.create_signed_url.side_effect = StorageException("boom")
    """
    client = MagicMock(name="SupabaseClient")
    bucket = client.storage.from_.return_value
    bucket.create_signed_url.return_value = {"signedUrl": SIGNED_URL, "signedURL": SIGNED_URL}
    return client


@pytest.fixture
def client_factory(storage_client):
    """Factory recording the credentials it was called with."""
    calls = []

    def factory(project_url: str, service_key: str):
        calls.append((project_url, service_key))
        return storage_client

    factory.calls = calls
    return factory


# ══════════════════════════════════════════════════════════════════════════
# Application + HTTP client
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(settings, client_factory):
    return create_app(settings, client_factory=client_factory)


@pytest.fixture
def unconfigured_app(unconfigured_settings):
    # Real factory: must fail on configuration before any network call
    return create_app(unconfigured_settings)


def _client_for(app, raise_app_exceptions: bool = True) -> AsyncClient:
    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient wired straight into the app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    async with _client_for(app) as client:
        yield client


@pytest_asyncio.fixture
async def unconfigured_client(unconfigured_app):
    async with _client_for(unconfigured_app) as client:
        yield client


@pytest.fixture
def make_client():
    """Build a client for an arbitrary app (e.g. with raise_app_exceptions=False)."""
    return _client_for


# ══════════════════════════════════════════════════════════════════════════
# In-memory PostgREST builder for script tests
# ══════════════════════════════════════════════════════════════════════════

class FakeQuery:
    """Subset of postgrest's sync request builder used by the scripts."""

    def __init__(self, rows: List[Dict[str, Any]], fail: Optional[Callable[[str, Any], Any]] = None):
        self._rows = rows
        self._fail = fail
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._limit: Optional[int] = None
        self.columns: Optional[str] = None
        self.eq_calls: List[tuple] = []
        self.or_expr: Optional[str] = None

    def select(self, columns: str) -> "FakeQuery":
        self.columns = columns
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.eq_calls.append((column, value))
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def or_(self, expr: str) -> "FakeQuery":
        self.or_expr = expr
        clauses = []
        for clause in expr.split(","):
            column, _op, value = clause.split(".", 2)
            clauses.append((column, value))
        self._filters.append(lambda row: any(row.get(c) == v for c, v in clauses))
        return self

    def limit(self, n: int) -> "FakeQuery":
        self._limit = n
        return self

    def execute(self):
        if self._fail is not None:
            for column, value in self.eq_calls:
                error = self._fail(column, value)
                if error is not None:
                    raise error
        rows = [r for r in self._rows if all(f(r) for f in self._filters)]
        if self._limit is not None:
            rows = rows[: self._limit]
        return SimpleNamespace(data=rows)


class FakeSupabase:
    def __init__(self, tables: Dict[str, List[Dict[str, Any]]], fail=None):
        self.tables = tables
        self.fail = fail
        self.queries: List[tuple] = []

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(self.tables.get(name, []), fail=self.fail)
        self.queries.append((name, query))
        return query


@pytest.fixture
def fake_supabase():
    return FakeSupabase
