"""
Shared test fixtures.

Settings are read at import time, so environment defaults are set here
before any project module is imported.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SHOPIFY_SHOP_DOMAIN", "test-store.myshopify.com")
os.environ.setdefault("SHOPIFY_ACCESS_TOKEN", "shpat_test")
os.environ.setdefault("DESTINATION_API_KEY", "env-api-key")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from unittest.mock import MagicMock, patch
from typing import Generator

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, data: list = None, count: int = None, calls: list = None):
        self._data = data or []
        self._count = count
        self._calls = calls if calls is not None else []

    def select(self, *args, **kwargs):
        return self

    def upsert(self, data, on_conflict: str = None):
        self._calls.append(("upsert", data, on_conflict))
        rows = [data] if isinstance(data, dict) else data
        self._data = [dict(row) for row in rows]
        self._count = None
        return self

    def update(self, data):
        self._calls.append(("update", data, None))
        self._data = [{**item, **data} for item in self._data] or [data]
        return self

    def delete(self):
        self._calls.append(("delete", None, None))
        return self

    @property
    def not_(self):
        return self

    def eq(self, column, value):
        return self

    def in_(self, column, values):
        return self

    def is_(self, column, value):
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        return self

    def limit(self, count):
        return self

    def execute(self) -> MockSupabaseResponse:
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None, calls: list = None):
        self._data = data or []
        self._count = count
        self._calls = calls

    def _query(self) -> MockSupabaseQuery:
        return MockSupabaseQuery([dict(r) for r in self._data], self._count, self._calls)

    def select(self, *args, **kwargs):
        return self._query()

    def upsert(self, data, on_conflict: str = None):
        return self._query().upsert(data, on_conflict=on_conflict)

    def update(self, data):
        return self._query().update(data)

    def delete(self):
        return self._query().delete()


class MockSupabaseClient:
    """Mock Supabase client. Write calls are recorded per table."""

    def __init__(self):
        self._tables = {}
        self.calls: dict[str, list] = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None})
        return MockSupabaseTable(config["data"], config["count"], self.calls.setdefault(name, []))

    def upserts(self, table_name: str) -> list:
        """Rows passed to upsert() on a table, in call order."""
        return [data for op, data, _ in self.calls.get(table_name, []) if op == "upsert"]


class FailingSupabaseClient:
    """Every query raises on execute()."""

    def __init__(self, message: str = "connection refused"):
        self.message = message

    def table(self, name: str):
        query = MagicMock()
        for method in ("select", "upsert", "update", "delete", "eq", "in_", "is_", "order", "range", "limit"):
            getattr(query, method).return_value = query
        query.not_ = query
        query.execute.side_effect = Exception(self.message)
        return query


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("sync_outcomes", [
                {"source_id": "gid://shopify/Product/1", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("sync_outcomes", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.sync_state_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.settings_service.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


@pytest.fixture
def no_sleep():
    """Records requested sleeps instead of sleeping."""
    calls = []

    def sleep(seconds):
        calls.append(seconds)

    sleep.calls = calls
    return sleep


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/sync/outcomes")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
