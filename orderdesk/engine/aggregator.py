# orderdesk/engine/aggregator.py
"""
Order Aggregator: joins orders, line items and payments into one computed
view per order.

Policy: best-effort display, not strict validation.
  - malformed numbers coerce to 0 (never raise)
  - non-string text fields and ids are stringified
  - items / payments pointing at unknown orders are dropped silently
    (partial fetches can legitimately produce them); the counts are
    reported through AggregationDiagnostics when the caller asks

Two sort passes, deliberately separate:
  1. ascending by order date (stable, ties keep input order) to number
     each customer's orders 1..k
  2. descending by order date for display
"""
import logging
import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable

from orderdesk.schemas.order import ComputedOrderView, LineItemView

logger = logging.getLogger(__name__)

_TRUTHY = {"true", "1", "yes", "t", "y"}


@dataclass
class AggregationDiagnostics:
    """Counts of rows dropped because their order was not in the input."""

    dropped_items: int = 0
    dropped_payments: int = 0


def to_number(value: Any) -> float:
    """Coerce to a finite float; anything unusable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_quantity(value: Any) -> int:
    return int(to_number(value))


def to_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


def to_text(value: Any) -> str | None:
    """Display text; non-string scalars are stringified, None stays None."""
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def to_identifier(value: Any) -> uuid.UUID | str | None:
    if value is None or isinstance(value, (uuid.UUID, str)):
        return value
    return str(value)


def _key(value: Any) -> str:
    # order numbers join as text; a missing one joins as ""
    return to_text(value) or ""


def to_date(value: Any) -> date | None:
    """Accepts date, datetime or ISO strings; anything else -> None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def _sort_key(view_date: date | None) -> date:
    # unparseable dates sort as the earliest possible date
    return view_date or date.min


def _field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


@dataclass
class _Accumulator:
    order_number: str
    order_date: date | None
    customer_name: str | None
    final_price: float
    customer_order_seq: int
    total_quantity: int = 0
    paid_amount: float = 0.0

    def __post_init__(self):
        self.items: list[LineItemView] = []


def aggregate(
    orders: Iterable[Any],
    items: Iterable[Any],
    payments: Iterable[Any],
    diagnostics: AggregationDiagnostics | None = None,
) -> list[ComputedOrderView]:
    """
    Build the dashboard's computed views.

    Args:
        orders: order records (mappings or objects) with order_number,
            order_date, customer_name, final_price
        items: line-item records with order_number, quantity, unit_price,
            is_shipped (plus display fields)
        payments: payment records with order_number, amount
        diagnostics: optional sink for dropped-row counts

    Returns:
        One ComputedOrderView per order number, newest order date first.
    """
    # 1) ascending pass: per-customer sequence numbers
    indexed = [(to_date(_field(o, "order_date")), o) for o in orders]
    ascending = sorted(indexed, key=lambda pair: _sort_key(pair[0]))

    # 2) one zeroed view per order number (a repeated order number
    #    overwrites in place but still counts towards the customer)
    customer_counts: dict[str | None, int] = {}
    views: dict[str, _Accumulator] = {}
    for order_date, order in ascending:
        customer = to_text(_field(order, "customer_name"))
        customer_counts[customer] = customer_counts.get(customer, 0) + 1

        order_number = _key(_field(order, "order_number"))
        views[order_number] = _Accumulator(
            order_number=order_number,
            order_date=order_date,
            customer_name=customer,
            final_price=to_number(_field(order, "final_price")),
            customer_order_seq=customer_counts[customer],
        )

    dropped_items = 0
    dropped_payments = 0

    # 3) fold line items; stored totals are never trusted
    for item in items:
        view = views.get(_key(_field(item, "order_number")))
        if view is None:
            dropped_items += 1
            continue
        quantity = to_quantity(_field(item, "quantity"))
        unit_price = to_number(_field(item, "unit_price"))
        view.total_quantity += quantity
        view.items.append(
            LineItemView(
                id=to_identifier(_field(item, "id")),
                order_number=view.order_number,
                product_model=to_text(_field(item, "product_model")),
                color=to_text(_field(item, "color")),
                specification=to_text(_field(item, "specification")),
                quantity=quantity,
                unit_price=unit_price,
                is_shipped=to_flag(_field(item, "is_shipped")),
                line_total=quantity * unit_price,
            )
        )

    # 4) fold payments
    for payment in payments:
        view = views.get(_key(_field(payment, "order_number")))
        if view is None:
            dropped_payments += 1
            continue
        view.paid_amount += to_number(_field(payment, "amount"))

    if dropped_items or dropped_payments:
        logger.debug(
            "Dropped %d item(s) and %d payment(s) referencing unknown orders",
            dropped_items,
            dropped_payments,
        )
    if diagnostics is not None:
        diagnostics.dropped_items += dropped_items
        diagnostics.dropped_payments += dropped_payments

    # 5) derived flags
    results: list[ComputedOrderView] = []
    for acc in views.values():
        receivable = acc.final_price - acc.paid_amount
        is_settled = receivable <= 0
        # vacuously true for an order with no items
        is_shipped = all(it.is_shipped for it in acc.items)
        results.append(
            ComputedOrderView(
                order_number=acc.order_number,
                order_date=acc.order_date,
                customer_name=acc.customer_name,
                final_price=acc.final_price,
                customer_order_seq=acc.customer_order_seq,
                total_quantity=acc.total_quantity,
                paid_amount=acc.paid_amount,
                receivable=receivable,
                is_settled=is_settled,
                is_shipped=is_shipped,
                is_completed=is_settled and is_shipped,
                items=acc.items,
            )
        )

    # 6) display order: newest first, ties keep the ascending-pass order
    return sorted(results, key=lambda v: _sort_key(v.order_date), reverse=True)
