"""Shared test fixtures for the quoting service."""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Ensure src is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.quoting.auth import Caller
from src.quoting.gateway import PersistenceGateway
from src.quoting.stores.sqlite_store import SQLiteStore


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def sqlite_store(tmp_path):
    """Provide a SQLiteStore on a temporary database file."""
    store = SQLiteStore(str(tmp_path / "test_quoting.db"))
    yield store
    store.close()


@pytest.fixture
def gateway(sqlite_store) -> PersistenceGateway:
    return PersistenceGateway(sqlite_store)


@pytest.fixture
def insert_spy(sqlite_store):
    """Record every SQLite insert, transactional ones included, while still writing."""
    with patch.object(SQLiteStore, "insert", autospec=True, side_effect=SQLiteStore.insert) as spy:
        yield spy


@pytest.fixture
def caller() -> Caller:
    return Caller(id="user-123", email="sales@example.com", role="sales")


@pytest.fixture
def sample_quote_data() -> dict:
    """Return a valid quote payload."""
    return {
        "client_name": "Acme",
        "email": "buyer@acme.com",
        "phone": "555-0100",
        "project_name": "Kitchen remodel",
        "installation_address": "1 Main St",
        "total": 1200.0,
    }


@pytest.fixture
def sample_item() -> dict:
    return {
        "productId": "cab-60",
        "material": "oak",
        "width": 60,
        "height": 72,
        "depth": 58,
        "price": 350.0,
    }
