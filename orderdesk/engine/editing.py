# orderdesk/engine/editing.py
"""
Edit session: the calling context of the confirmation gate.

Line items have a fixed shape. Only the attributes enumerated in
LineItemField can be edited, each with its own coercion rule, and every
edit resets the confirmation state to DRAFT so a corrected value is
re-validated instead of riding on a stale confirmation.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Iterable

from orderdesk.core.errors import MissingInput
from orderdesk.engine.aggregator import to_flag, to_number
from orderdesk.engine.confirmation import (
    ConfirmationState,
    GateDecision,
    GateEvent,
    evaluate,
    transition,
)
from orderdesk.engine.reconciler import ReconcilePlan, reconcile
from orderdesk.engine.suggestions import Vocabularies
from orderdesk.schemas.order import LineItemInput, OrderHeader, clamp_quantity


def build_order_number(order_date: date | None, suffix: str | None) -> str:
    """
    <YYYYMMDD><suffix>. The result is an opaque key; nothing parses it.

    Raises:
        MissingInput: if the date or the suffix is blank.
    """
    if order_date is None:
        raise MissingInput("order_date", "Order date is required")
    suffix = (suffix or "").strip()
    if not suffix:
        raise MissingInput("order_number_suffix", "Order number suffix is required")
    return f"{order_date.strftime('%Y%m%d')}{suffix}"


def _text(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class LineItemField(str, Enum):
    PRODUCT_MODEL = "product_model"
    COLOR = "color"
    SPECIFICATION = "specification"
    QUANTITY = "quantity"
    UNIT_PRICE = "unit_price"
    IS_SHIPPED = "is_shipped"


_ITEM_COERCERS: dict[LineItemField, Callable[[Any], Any]] = {
    LineItemField.PRODUCT_MODEL: lambda v: _text(v) or "",
    LineItemField.COLOR: _text,
    LineItemField.SPECIFICATION: _text,
    LineItemField.QUANTITY: clamp_quantity,
    LineItemField.UNIT_PRICE: lambda v: max(to_number(v), 0.0),
    LineItemField.IS_SHIPPED: to_flag,
}


class HeaderField(str, Enum):
    ORDER_DATE = "order_date"
    ORDER_NUMBER_SUFFIX = "order_number_suffix"
    CUSTOMER_NAME = "customer_name"
    FINAL_PRICE = "final_price"


def _coerce_date(value: Any) -> date | None:
    if value is None or isinstance(value, date):
        return value
    text = str(value).strip()
    return date.fromisoformat(text) if text else None


_HEADER_COERCERS: dict[HeaderField, Callable[[Any], Any]] = {
    HeaderField.ORDER_DATE: _coerce_date,
    HeaderField.ORDER_NUMBER_SUFFIX: lambda v: _text(v) or "",
    HeaderField.CUSTOMER_NAME: lambda v: _text(v) or "",
    HeaderField.FINAL_PRICE: lambda v: max(to_number(v), 0.0),
}


def items_subtotal(items: Iterable[LineItemInput]) -> float:
    """Sum of line totals, the suggested final price."""
    return sum(item.compute_line_total() for item in items)


def discount(subtotal: float, final_price: float) -> float:
    """How far the negotiated price sits below the subtotal (never negative)."""
    return max(subtotal - final_price, 0.0)


@dataclass
class EditSession:
    """
    One order form, from load to successful save.

    prior_ids is the snapshot of item ids the session started from
    (empty for a new order). The state lives only as long as the session.
    """

    header: OrderHeader = field(default_factory=OrderHeader)
    items: list[LineItemInput] = field(default_factory=list)
    prior_ids: frozenset[uuid.UUID] = frozenset()
    state: ConfirmationState = ConfirmationState.DRAFT

    # ---- edits (each resets to DRAFT) ----

    def _edited(self) -> None:
        self.state = transition(self.state, GateEvent.EDIT)

    def set_header(self, name: HeaderField | str, value: Any) -> None:
        header_field = HeaderField(name)
        coerced = _HEADER_COERCERS[header_field](value)
        self.header = self.header.model_copy(update={header_field.value: coerced})
        self._edited()

    def new_item(self, **values: Any) -> LineItemInput:
        """Append a blank row with a freshly allocated identifier."""
        item = LineItemInput(id=uuid.uuid4())
        self.items.append(item)
        for name, value in values.items():
            self.update_item(item.id, name, value)
        self._edited()
        return self._find(item.id)

    def add_item(self, item: LineItemInput) -> LineItemInput:
        if item.id is None:
            item = item.model_copy(update={"id": uuid.uuid4()})
        self.items.append(item)
        self._edited()
        return item

    def remove_item(self, item_id: uuid.UUID) -> None:
        before = len(self.items)
        self.items = [it for it in self.items if it.id != item_id]
        if len(self.items) == before:
            raise KeyError(item_id)
        self._edited()

    def update_item(self, item_id: uuid.UUID, name: LineItemField | str, value: Any) -> LineItemInput:
        item_field = LineItemField(name)
        coerced = _ITEM_COERCERS[item_field](value)
        for index, item in enumerate(self.items):
            if item.id == item_id:
                updated = item.model_copy(update={item_field.value: coerced})
                self.items[index] = updated
                self._edited()
                return updated
        raise KeyError(item_id)

    def _find(self, item_id: uuid.UUID) -> LineItemInput:
        for item in self.items:
            if item.id == item_id:
                return item
        raise KeyError(item_id)

    # ---- submission ----

    def submit(self, vocabularies: Vocabularies) -> GateDecision:
        """Run the gate and move to the state it decided."""
        decision = evaluate(self.header, self.items, vocabularies, self.state)
        self.state = decision.next_state
        return decision

    def order_number(self) -> str:
        return build_order_number(self.header.order_date, self.header.order_number_suffix)

    def plan(self) -> ReconcilePlan:
        return reconcile(self.prior_ids, self.items)

    def mark_persisted(self) -> None:
        self.state = transition(self.state, GateEvent.PERSISTED)
        self.prior_ids = frozenset(item.id for item in self.items if item.id is not None)

    def mark_failed(self) -> None:
        self.state = transition(self.state, GateEvent.PERSIST_FAILED)

    @property
    def subtotal(self) -> float:
        return items_subtotal(self.items)
