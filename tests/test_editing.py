"""
Unit tests for the edit session around the confirmation gate.

Tests cover:
- Order number construction and missing input
- Fixed-shape item edits with per-field coercion
- Reset-on-edit of a pending confirmation
- Snapshot-based reconciliation across saves
"""
import uuid
from datetime import date

import pytest

from orderdesk.core.errors import MissingInput
from orderdesk.engine.confirmation import ConfirmationState
from orderdesk.engine.editing import (
    EditSession,
    HeaderField,
    LineItemField,
    build_order_number,
    discount,
)
from orderdesk.engine.suggestions import DEFAULT_VOCABULARIES
from orderdesk.schemas.order import LineItemInput, OrderHeader

PENDING = ConfirmationState.PENDING_CONFIRMATION
DRAFT = ConfirmationState.DRAFT


# ============================================================================
# build_order_number
# ============================================================================

class TestBuildOrderNumber:
    def test_date_prefix_and_suffix(self):
        assert build_order_number(date(2024, 1, 5), "A") == "20240105A"

    def test_suffix_is_trimmed(self):
        assert build_order_number(date(2024, 12, 31), "  07 ") == "2024123107"

    def test_missing_date(self):
        with pytest.raises(MissingInput) as exc:
            build_order_number(None, "A")
        assert exc.value.field == "order_date"

    @pytest.mark.parametrize("suffix", [None, "", "   "])
    def test_missing_suffix(self, suffix):
        with pytest.raises(MissingInput) as exc:
            build_order_number(date(2024, 1, 5), suffix)
        assert exc.value.field == "order_number_suffix"


# ============================================================================
# Field edits
# ============================================================================

class TestFieldEdits:
    def test_new_item_allocates_an_id(self):
        session = EditSession()

        first = session.new_item(product_model="9070")
        second = session.new_item()

        assert first.id is not None and second.id is not None
        assert first.id != second.id
        assert session.items[0].product_model == "9070"

    def test_non_numeric_quantity_becomes_zero(self):
        session = EditSession()
        item = session.new_item()

        updated = session.update_item(item.id, LineItemField.QUANTITY, "abc")

        assert updated.quantity == 0

    def test_quantity_and_price_are_clamped(self):
        session = EditSession()
        item = session.new_item()

        session.update_item(item.id, "quantity", "-3")
        updated = session.update_item(item.id, "unit_price", "-12.5")

        assert updated.quantity == 0
        assert updated.unit_price == 0

    def test_fractional_quantity_truncates(self):
        session = EditSession()
        item = session.new_item()

        assert session.update_item(item.id, "quantity", "2.9").quantity == 2

    def test_unknown_field_rejected(self):
        session = EditSession()
        item = session.new_item()

        with pytest.raises(ValueError):
            session.update_item(item.id, "line_total", 5)

    def test_unknown_item_rejected(self):
        with pytest.raises(KeyError):
            EditSession().update_item(uuid.uuid4(), "color", "HJ001")

    def test_set_header_coerces(self):
        session = EditSession()

        session.set_header(HeaderField.ORDER_DATE, "2024-01-05")
        session.set_header("final_price", "abc")
        session.set_header("customer_name", "  Sharif ")

        assert session.header.order_date == date(2024, 1, 5)
        assert session.header.final_price == 0
        assert session.header.customer_name == "Sharif"


# ============================================================================
# Gate interaction
# ============================================================================

def _pending_session():
    session = EditSession(header=OrderHeader(order_date=date(2024, 1, 5), order_number_suffix="A", customer_name="Acme"))
    item = session.new_item(product_model="9070", color="363-6", quantity=1, unit_price=100)
    decision = session.submit(DEFAULT_VOCABULARIES)
    assert decision.proceed is False
    assert session.state is PENDING
    return session, item


class TestResetOnEdit:
    def test_item_edit_resets_pending(self):
        session, item = _pending_session()

        session.update_item(item.id, "color", "Teal")
        decision = session.submit(DEFAULT_VOCABULARIES)

        assert decision.proceed is False
        assert "Item 1 color: 'Teal'" in decision.novel_fields

    def test_header_edit_resets_pending(self):
        session, _ = _pending_session()

        session.set_header("customer_name", "Acme Ltd")

        assert session.state is DRAFT
        assert session.submit(DEFAULT_VOCABULARIES).proceed is False

    def test_adding_and_removing_rows_reset_pending(self):
        session, item = _pending_session()
        session.add_item(LineItemInput(product_model="9078"))
        assert session.state is DRAFT

        session.submit(DEFAULT_VOCABULARIES)
        session.remove_item(item.id)
        assert session.state is DRAFT

    def test_repeat_without_edit_proceeds(self):
        session, _ = _pending_session()

        decision = session.submit(DEFAULT_VOCABULARIES)

        assert decision.proceed is True
        assert session.state is DRAFT

    def test_failed_persist_returns_to_draft(self):
        session, _ = _pending_session()

        session.mark_failed()

        assert session.state is DRAFT


# ============================================================================
# Reconciliation across saves
# ============================================================================

class TestSessionPlan:
    def test_new_order_only_upserts(self):
        session = EditSession()
        session.new_item()
        session.new_item()

        plan = session.plan()

        assert len(plan.to_upsert) == 2
        assert plan.to_delete == set()

    def test_existing_order_deletes_removed_rows(self):
        kept = LineItemInput(id=uuid.uuid4(), product_model="9070")
        removed = LineItemInput(id=uuid.uuid4(), product_model="9078")
        session = EditSession(
            header=OrderHeader(customer_name="Sharif"),
            items=[kept, removed],
            prior_ids=frozenset({kept.id, removed.id}),
        )

        session.remove_item(removed.id)
        added = session.new_item(product_model="D-02")
        plan = session.plan()

        assert plan.to_delete == {removed.id}
        assert plan.upsert_ids == {kept.id, added.id}

    def test_mark_persisted_moves_snapshot(self):
        session = EditSession()
        item = session.new_item()

        session.mark_persisted()
        session.remove_item(item.id)

        assert session.plan().to_delete == {item.id}


class TestSummary:
    def test_subtotal_and_discount(self):
        session = EditSession()
        session.new_item(quantity=2, unit_price=300)
        session.new_item(quantity=1, unit_price=150)

        assert session.subtotal == 750
        assert discount(session.subtotal, 700) == 50
        assert discount(session.subtotal, 800) == 0
