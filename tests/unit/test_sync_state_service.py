"""
Unit tests for SyncStateService.

Run: pytest tests/unit/test_sync_state_service.py -v
"""

import pytest
from unittest.mock import patch

from models.sync import SyncOutcome
from services.sync_state_service import SyncStateService
from exceptions import PersistenceError, SyncOutcomeNotFoundError
from tests.conftest import FailingSupabaseClient
from tests.factories import SyncOutcomeFactory


SOURCE_ID = "gid://shopify/Product/1001"


class TestSyncStateServiceFindOne:
    """Tests for SyncStateService.find_one()"""

    def test_returns_stored_outcome(self, mock_db, mock_supabase):
        # Arrange
        mock_supabase.set_table_data("sync_outcomes", [SyncOutcomeFactory.create(source_id=SOURCE_ID)])
        service = SyncStateService()

        # Act
        outcome = service.find_one(SOURCE_ID)

        # Assert
        assert outcome.source_id == SOURCE_ID
        assert outcome.succeeded is True

    def test_returns_none_when_missing(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("sync_outcomes", [])
        service = SyncStateService()

        assert service.find_one(SOURCE_ID) is None

    def test_database_error_raises_persistence_error(self):
        with patch("services.sync_state_service.get_supabase_client", return_value=FailingSupabaseClient()):
            service = SyncStateService()

            with pytest.raises(PersistenceError):
                service.find_one(SOURCE_ID)

    def test_get_missing_raises_not_found(self, mock_db, mock_supabase):
        service = SyncStateService()

        with pytest.raises(SyncOutcomeNotFoundError):
            service.get(SOURCE_ID)


class TestSyncStateServiceUpsert:
    """Tests for SyncStateService.upsert()"""

    def test_upserts_on_source_id(self, mock_db, mock_supabase):
        """Should write one row keyed on source_id with a timestamp."""
        # Arrange
        service = SyncStateService()
        outcome = SyncOutcome(source_id=SOURCE_ID, destination_order_id="0", last_error="Order creation failed")

        # Act
        service.upsert(outcome)

        # Assert
        op, row, on_conflict = mock_supabase.calls["sync_outcomes"][0]
        assert op == "upsert"
        assert on_conflict == "source_id"
        assert row["source_id"] == SOURCE_ID
        assert row["last_error"] == "Order creation failed"
        assert row["destination_order_id"] == "0"
        assert row["last_attempt_at"] is not None

    def test_success_row_clears_error(self, mock_db, mock_supabase):
        service = SyncStateService()

        service.upsert(SyncOutcome(source_id=SOURCE_ID, destination_order_id="500"))

        row = mock_supabase.upserts("sync_outcomes")[0]
        assert row["last_error"] is None
        assert row["destination_order_id"] == "500"

    def test_database_error_raises_persistence_error(self):
        with patch("services.sync_state_service.get_supabase_client", return_value=FailingSupabaseClient()):
            service = SyncStateService()

            with pytest.raises(PersistenceError):
                service.upsert(SyncOutcome(source_id=SOURCE_ID, destination_order_id="500"))


class TestSyncStateServiceListOutcomes:
    """Tests for SyncStateService.list_outcomes()"""

    def test_returns_paginated(self, mock_db, mock_supabase):
        # Arrange
        rows = [
            SyncOutcomeFactory.create(source_id="1", title="A"),
            SyncOutcomeFactory.create_failed(source_id="2", title="B"),
        ]
        mock_supabase.set_table_data("sync_outcomes", rows, count=42)
        service = SyncStateService()

        # Act
        result = service.list_outcomes(page=2, page_size=20)

        # Assert
        assert len(result.data) == 2
        assert result.total == 42
        assert result.total_pages == 3
        assert result.data[1].last_error == "Order creation failed"


class TestSyncStateServiceDelete:
    """Tests for SyncStateService.delete()"""

    def test_deletes_existing(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("sync_outcomes", [SyncOutcomeFactory.create(source_id=SOURCE_ID)])
        service = SyncStateService()

        service.delete(SOURCE_ID)

        assert mock_supabase.calls["sync_outcomes"][0][0] == "delete"

    def test_missing_raises_not_found(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("sync_outcomes", [])
        service = SyncStateService()

        with pytest.raises(SyncOutcomeNotFoundError):
            service.delete(SOURCE_ID)
