"""
Unit tests for OrderService against a mocked RecordStore.

Tests cover:
- Create: the order row is removed again when its items fail to save
- Create: caller-supplied item ids never reach storage
"""
import uuid
from datetime import date
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from orderdesk.core.errors import ConstraintViolation, StorageError
from orderdesk.engine.suggestions import DEFAULT_VOCABULARIES
from orderdesk.repositories.store import ITEMS, ORDERS, RecordFilter
from orderdesk.schemas.order import LineItemInput, OrderHeader, OrderSubmit
from orderdesk.services.order_service import OrderService


def _payload(*items):
    return OrderSubmit(
        header=OrderHeader(
            order_date=date(2024, 1, 5),
            order_number_suffix="A",
            customer_name="Sharif",
            final_price=1000,
        ),
        items=list(items) or [LineItemInput(product_model="9070", color="363-6", quantity=1, unit_price=300)],
    )


def _store(items_error=None):
    store = MagicMock()

    def insert(table, records):
        if table == ITEMS and items_error is not None:
            raise items_error
        return records if isinstance(records, list) else [records]

    store.insert.side_effect = insert
    return store


@pytest.fixture()
def service():
    return OrderService(token_key="test-token-key")


# ============================================================================
# create_order
# ============================================================================

class TestCreateRollback:
    def test_failed_item_insert_removes_order(self, service):
        store = _store(items_error=StorageError("connection reset"))

        with pytest.raises(HTTPException) as exc_info:
            service.create_order(store, _payload(), DEFAULT_VOCABULARIES)

        assert exc_info.value.status_code == 502
        store.delete.assert_called_once_with(ORDERS, RecordFilter(eq={"order_number": "20240105A"}))

    def test_item_conflict_is_409_and_removes_order(self, service):
        store = _store(items_error=ConstraintViolation("duplicate key value"))

        with pytest.raises(HTTPException) as exc_info:
            service.create_order(store, _payload(), DEFAULT_VOCABULARIES)

        assert exc_info.value.status_code == 409
        store.delete.assert_called_once()

    def test_cleanup_failure_still_reports_item_error(self, service):
        store = _store(items_error=StorageError("connection reset"))
        store.delete.side_effect = StorageError("still down")

        with pytest.raises(HTTPException) as exc_info:
            service.create_order(store, _payload(), DEFAULT_VOCABULARIES)

        assert exc_info.value.status_code == 502
        assert exc_info.value.detail == "connection reset"

    def test_order_insert_failure_skips_items(self, service):
        store = MagicMock()
        store.insert.side_effect = ConstraintViolation("UNIQUE constraint failed")

        with pytest.raises(HTTPException) as exc_info:
            service.create_order(store, _payload(), DEFAULT_VOCABULARIES)

        assert exc_info.value.status_code == 409
        assert store.insert.call_count == 1
        store.delete.assert_not_called()


class TestCreateIdentifiers:
    def test_item_ids_are_fresh(self, service):
        store = _store()
        sent = uuid.uuid4()
        item = LineItemInput(id=sent, product_model="9070", color="363-6", quantity=1, unit_price=300)

        result = service.create_order(store, _payload(item), DEFAULT_VOCABULARIES)

        assert result.proceed is True
        table, records = store.insert.call_args_list[1].args
        assert table == ITEMS
        assert len(records) == 1
        assert isinstance(records[0]["id"], uuid.UUID)
        assert records[0]["id"] != sent
