"""Tests for the Supabase store (mocked client, no network calls)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from postgrest.exceptions import APIError

from src.common.errors import StoreError, WorkflowStepError
from src.quoting.gateway import PersistenceGateway, resolve_embeds
from src.quoting.quotes import create_quote
from src.quoting.stores.supabase_store import (
    SupabaseStore,
    create_supabase_client,
    render_select,
)


def _response(data):
    response = MagicMock()
    response.data = data
    return response


def _api_error(message="permission denied", code="42501") -> APIError:
    return APIError({"message": message, "code": code, "details": None, "hint": None})


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    return SupabaseStore(client=client)


class TestRenderSelect:
    def test_no_embeds(self):
        assert render_select([]) == "*"

    def test_order_embeds(self):
        embeds = resolve_embeds("orders", ["quote", "receipts"])
        assert render_select(embeds) == "*, quote:quotes(*), receipts:receipts(*)"

    def test_nested_embeds(self):
        embeds = resolve_embeds("quotes", ["spaces.items"])
        assert render_select(embeds) == "*, spaces:spaces(*, items:items(*))"


class TestCredentials:
    def test_missing_credentials_raise(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "")
        monkeypatch.setenv("SUPABASE_KEY", "")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "")
        with pytest.raises(ValueError, match="SUPABASE_URL"):
            create_supabase_client()

    def test_lazy_client_uses_explicit_credentials(self):
        with patch("supabase.create_client") as mock_create:
            store = SupabaseStore(supabase_url="https://x.supabase.co", supabase_key="k")
            assert store.client is mock_create.return_value
            mock_create.assert_called_once_with("https://x.supabase.co", "k")


class TestOperations:
    def test_insert(self, store, client):
        client.table.return_value.insert.return_value.execute.return_value = _response(
            [{"id": "q1", "total": 10}]
        )
        rows = store.insert("quotes", [{"total": 10}])
        assert rows == [{"id": "q1", "total": 10}]
        client.table.assert_called_with("quotes")
        client.table.return_value.insert.assert_called_once_with([{"total": 10}])

    def test_insert_api_error(self, store, client):
        client.table.return_value.insert.return_value.execute.side_effect = _api_error()
        with pytest.raises(StoreError) as exc_info:
            store.insert("quotes", [{"total": 10}])
        assert exc_info.value.message == "permission denied"
        assert exc_info.value.code == "42501"

    def test_select_builds_query(self, store, client):
        query = MagicMock()
        client.table.return_value.select.return_value = query
        query.eq.return_value = query
        query.order.return_value = query
        query.limit.return_value = query
        query.execute.return_value = _response([{"id": "o1"}])

        embeds = resolve_embeds("orders", ["quote", "receipts"])
        rows = store.select("orders", {"id": "o1"}, embeds, "created_at", True, 1)

        assert rows == [{"id": "o1"}]
        client.table.return_value.select.assert_called_once_with(
            "*, quote:quotes(*), receipts:receipts(*)"
        )
        query.eq.assert_called_once_with("id", "o1")
        query.order.assert_called_once_with("created_at", desc=True)
        query.limit.assert_called_once_with(1)

    def test_filters_null_and_lists(self, store, client):
        query = MagicMock()
        client.table.return_value.select.return_value = query
        query.is_.return_value = query
        query.in_.return_value = query
        query.execute.return_value = _response([])

        store.select("receipts", {"sent_at": None, "id": ["a", "b"]}, [], None, False, None)
        query.is_.assert_called_once_with("sent_at", "null")
        query.in_.assert_called_once_with("id", ["a", "b"])

    def test_update(self, store, client):
        update_query = client.table.return_value.update.return_value
        update_query.eq.return_value.execute.return_value = _response([{"id": "r1", "status": "sent"}])
        rows = store.update("receipts", {"status": "sent"}, {"id": "r1"})
        assert rows[0]["status"] == "sent"
        update_query.eq.assert_called_once_with("id", "r1")

    def test_delete(self, store, client):
        delete_query = client.table.return_value.delete.return_value
        delete_query.eq.return_value.execute.return_value = _response([{"id": "q1"}])
        assert store.delete("quotes", {"id": "q1"}) == [{"id": "q1"}]


class TestCompensatingTransaction:
    def test_rollback_deletes_inserted_rows_newest_first(self, store, client):
        inserted = iter([[{"id": "q1"}], [{"id": "s1"}], [{"id": "i1"}, {"id": "i2"}]])
        client.table.return_value.insert.return_value.execute.side_effect = (
            lambda: _response(next(inserted))
        )
        delete_query = client.table.return_value.delete.return_value
        delete_query.eq.return_value.execute.return_value = _response([])

        scope = store.begin()
        scope.insert("quotes", [{}])
        scope.insert("spaces", [{}])
        scope.insert("items", [{}, {}])
        scope.rollback()

        deleted = [c.args for c in delete_query.eq.call_args_list]
        assert deleted == [("id", "i2"), ("id", "i1"), ("id", "s1"), ("id", "q1")]

    def test_scope_shares_client(self, store, client):
        scope = store.begin()
        assert scope is not store
        assert scope.client is client

    def test_commit_forgets_journal(self, store, client):
        client.table.return_value.insert.return_value.execute.return_value = _response([{"id": "q1"}])
        scope = store.begin()
        scope.insert("quotes", [{}])
        scope.commit()
        scope.rollback()
        client.table.return_value.delete.assert_not_called()

    def test_inserts_outside_scope_not_journaled(self, store, client):
        client.table.return_value.insert.return_value.execute.return_value = _response([{"id": "o1"}])
        scope = store.begin()
        store.insert("orders", [{}])
        scope.rollback()
        client.table.return_value.delete.assert_not_called()

    def test_incomplete_rollback_raises(self, store, client):
        client.table.return_value.insert.return_value.execute.return_value = _response([{"id": "q1"}])
        delete_query = client.table.return_value.delete.return_value
        delete_query.eq.return_value.execute.side_effect = _api_error("delete denied")

        scope = store.begin()
        scope.insert("quotes", [{}])
        with pytest.raises(StoreError) as exc_info:
            scope.rollback()
        assert exc_info.value.code == "rollback_incomplete"
        assert "quotes/q1" in exc_info.value.message

    def test_gateway_transaction_rolls_back(self, store, client):
        client.table.return_value.insert.return_value.execute.return_value = _response([{"id": "q1"}])
        delete_query = client.table.return_value.delete.return_value
        delete_query.eq.return_value.execute.return_value = _response([{"id": "q1"}])
        gw = PersistenceGateway(store)

        with pytest.raises(RuntimeError):
            with gw.transaction() as tx:
                tx.insert("quotes", {"total": 1})
                raise RuntimeError("later step failed")
        delete_query.eq.assert_called_once_with("id", "q1")

    def test_shared_gateway_rollback_keeps_other_requests_rows(self, store, client):
        inserted = iter([[{"id": "q1"}], [{"id": "o1"}]])
        client.table.return_value.insert.return_value.execute.side_effect = (
            lambda: _response(next(inserted))
        )
        delete_query = client.table.return_value.delete.return_value
        delete_query.eq.return_value.execute.return_value = _response([])
        gw = PersistenceGateway(store)

        with pytest.raises(RuntimeError):
            with gw.transaction() as tx:
                tx.insert("quotes", {"total": 1})
                gw.insert("orders", {"total": 1})
                raise RuntimeError("later step failed")

        delete_query.eq.assert_called_once_with("id", "q1")


class TestCreateQuoteOnSupabase:
    def test_failed_cleanup_reported_on_step_error(self, store, client, caller, sample_quote_data):
        quotes, spaces = MagicMock(), MagicMock()
        quotes.insert.return_value.execute.return_value = _response([{"id": "q1", "total": 1200.0}])
        quotes.delete.return_value.eq.return_value.execute.side_effect = _api_error("delete denied")
        spaces.insert.return_value.execute.side_effect = _api_error("rls denied")
        client.table.side_effect = {"quotes": quotes, "spaces": spaces}.get

        with pytest.raises(WorkflowStepError) as exc_info:
            create_quote(
                PersistenceGateway(store), caller, sample_quote_data, [{"name": "Kitchen"}]
            )

        error = exc_info.value
        assert error.step == "insert_space[0]"
        assert error.rolled_back is False
        assert error.rollback_error.code == "rollback_incomplete"
        assert "quotes/q1" in error.rollback_error.message
        quotes.delete.return_value.eq.assert_called_once_with("id", "q1")

    def test_successful_cleanup_reported_on_step_error(
        self, store, client, caller, sample_quote_data
    ):
        quotes, spaces = MagicMock(), MagicMock()
        quotes.insert.return_value.execute.return_value = _response([{"id": "q1", "total": 1200.0}])
        quotes.delete.return_value.eq.return_value.execute.return_value = _response([{"id": "q1"}])
        spaces.insert.return_value.execute.side_effect = _api_error("rls denied")
        client.table.side_effect = {"quotes": quotes, "spaces": spaces}.get

        with pytest.raises(WorkflowStepError) as exc_info:
            create_quote(
                PersistenceGateway(store), caller, sample_quote_data, [{"name": "Kitchen"}]
            )

        assert exc_info.value.rolled_back is True
        assert exc_info.value.rollback_error is None
