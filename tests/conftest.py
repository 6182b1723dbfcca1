"""
Test configuration and fixtures for the order desk test suite.

Provides:
- Environment for Settings, set before any orderdesk module is imported
- Temporary SQLite database per test (file based, so the dashboard's
  concurrent readers each open their own connection)
- FastAPI TestClient with auth, storage and vocabularies overridden
- A `seed` helper for inserting orders, items and payments
"""
import os
import uuid
from contextlib import contextmanager
from datetime import date
from unittest.mock import patch

os.environ["DATABASE_URL"] = "sqlite:///./orderdesk-unused.db"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["STORAGE_BACKEND"] = "sql"
os.environ.pop("VOCABULARY_PATH", None)

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from orderdesk.core.auth import require_auth
from orderdesk.database import build_engine, create_db_and_tables, get_store_factory
from orderdesk.engine.suggestions import DEFAULT_VOCABULARIES
from orderdesk.repositories.store import ITEMS, ORDERS, PAYMENTS, SQLModelStore
from orderdesk.schemas.user import AuthenticatedUser
from orderdesk.services.suggestion_service import get_vocabularies

OPERATOR = AuthenticatedUser(
    id=uuid.UUID("5f0c6d3e-8a51-4c8e-9a51-2a1f8d0c7b11"),
    email="operator@orderdesk.io",
)


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def engine(tmp_path):
    """Fresh SQLite database with all tables, one per test."""
    engine = build_engine(f"sqlite:///{tmp_path / 'orderdesk.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def store_factory(engine):
    """Store opener bound to the test database (replaces open_store)."""

    @contextmanager
    def factory():
        with Session(engine) as session:
            yield SQLModelStore(session)

    return factory


@pytest.fixture()
def store(store_factory):
    with store_factory() as s:
        yield s


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------

def _make_client(store_factory, authenticated: bool):
    from orderdesk.main import app

    app.dependency_overrides[get_store_factory] = lambda: store_factory
    app.dependency_overrides[get_vocabularies] = lambda: DEFAULT_VOCABULARIES
    if authenticated:
        app.dependency_overrides[require_auth] = lambda: OPERATOR
    return app


@pytest.fixture()
def client(store_factory):
    """
    TestClient for an authenticated operator.

    The lifespan's table creation is patched out; tables already exist in
    the per-test database.
    """
    app = _make_client(store_factory, authenticated=True)
    with patch("orderdesk.main.create_db_and_tables"):
        with TestClient(app) as c:
            yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def anon_client(store_factory):
    """TestClient with the real auth dependency in place."""
    app = _make_client(store_factory, authenticated=False)
    with patch("orderdesk.main.create_db_and_tables"):
        with TestClient(app) as c:
            yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

class Seed:
    """Insert records straight through the store, bypassing the gate."""

    def __init__(self, store: SQLModelStore):
        self.store = store

    def order(
        self,
        order_number: str = "20240105A",
        *,
        order_date: date = date(2024, 1, 5),
        customer_name: str = "Sharif",
        final_price: float = 1000.0,
    ) -> str:
        self.store.insert(
            ORDERS,
            {
                "order_number": order_number,
                "order_date": order_date,
                "customer_name": customer_name,
                "final_price": final_price,
            },
        )
        return order_number

    def item(
        self,
        order_number: str = "20240105A",
        *,
        product_model: str = "9070",
        color: str | None = "363-6",
        quantity: int = 2,
        unit_price: float = 300.0,
        is_shipped: bool = False,
    ) -> uuid.UUID:
        item_id = uuid.uuid4()
        self.store.insert(
            ITEMS,
            {
                "id": item_id,
                "order_number": order_number,
                "product_model": product_model,
                "color": color,
                "quantity": quantity,
                "unit_price": unit_price,
                "is_shipped": is_shipped,
            },
        )
        return item_id

    def payment(self, order_number: str = "20240105A", *, amount: float = 600.0) -> uuid.UUID:
        payment_id = uuid.uuid4()
        self.store.insert(
            PAYMENTS,
            {"id": payment_id, "order_number": order_number, "amount": amount},
        )
        return payment_id


@pytest.fixture()
def seed(store):
    return Seed(store)
