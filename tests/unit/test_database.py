"""
Unit tests for database connection helpers.

Run: pytest tests/unit/test_database.py -v
"""

import pytest
from unittest.mock import patch

from config.database import check_connection, get_supabase_client
from exceptions import AppError, DatabaseError
from tests.conftest import FailingSupabaseClient


class TestGetSupabaseClient:
    """Tests for get_supabase_client()"""

    def test_connect_failure_raises_app_database_error(self):
        """Should raise the application's DatabaseError, not a local one."""
        get_supabase_client.cache_clear()

        with patch("config.database.create_client", side_effect=RuntimeError("bad url")):
            with pytest.raises(DatabaseError) as exc:
                get_supabase_client()

        get_supabase_client.cache_clear()
        assert isinstance(exc.value, AppError)
        assert exc.value.status_code == 500
        assert exc.value.details["operation"] == "connect"


class TestCheckConnection:
    """Tests for check_connection()"""

    def test_healthy(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("sync_outcomes", [{"source_id": "1"}], count=1)
        mock_supabase.set_table_data("settings", [{"key": "tag"}], count=1)

        result = check_connection()

        assert result["status"] == "healthy"
        assert result["outcomes_count"] == 1

    def test_unhealthy(self):
        with patch("config.database.get_supabase_client", return_value=FailingSupabaseClient()):
            result = check_connection()

        assert result["status"] == "unhealthy"
