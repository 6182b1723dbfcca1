# orderdesk/schemas/order.py
import math
import uuid
from datetime import date

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from orderdesk.engine.confirmation import ConfirmationState


def clamp_quantity(v):
    """
    Coerce a quantity to a non-negative int.

    Non-numeric input becomes 0 rather than a validation error; negative
    values are clamped to 0.
    """
    if v is None or isinstance(v, bool):
        return 0
    try:
        number = float(v)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return max(int(number), 0)


def _strip_or_none(v: str | None) -> str | None:
    if v is None:
        return v
    v = str(v).strip()
    return v or None


class OrderHeader(SQLModel):
    """
    Header fields collected by the order form.

    The full order number is derived as <YYYYMMDD><order_number_suffix>;
    both parts are checked at submission time (blank => MissingInput),
    not here, so a blocked gate round-trip never fails validation.
    """

    model_config = ConfigDict(extra="forbid")

    order_date: date | None = None
    order_number_suffix: str = ""
    customer_name: str = ""
    final_price: float = Field(default=0.0, ge=0)

    @field_validator("order_number_suffix", "customer_name", mode="before")
    @classmethod
    def strip_text(cls, v: str | None) -> str:
        if v is None:
            return ""
        return str(v).strip()


class LineItemInput(SQLModel):
    """
    One editable product row.

    - id: durable identifier; None for rows created in this session
      (a fresh UUID is assigned before reconciliation).
    - line_total: accepted from clients but never trusted; it is
      recomputed as quantity * unit_price before anything is stored.
    """

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID | None = None
    product_model: str = ""
    color: str | None = None
    specification: str | None = None
    quantity: int = 0
    unit_price: float = Field(default=0.0, ge=0)
    is_shipped: bool = False
    line_total: float = 0.0

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v) -> int:
        return clamp_quantity(v)

    @field_validator("product_model", mode="before")
    @classmethod
    def strip_model(cls, v: str | None) -> str:
        return _strip_or_none(v) or ""

    @field_validator("color", "specification", mode="before")
    @classmethod
    def strip_optional(cls, v: str | None) -> str | None:
        return _strip_or_none(v)

    def compute_line_total(self) -> float:
        return self.quantity * self.unit_price


class OrderSubmit(SQLModel):
    """
    Payload for creating or editing an order.

    confirmation_token:
      - omitted on the first submit
      - echoed back from a blocked response to confirm novel values;
        ignored (treated as a fresh draft) if the data changed since
    """

    model_config = ConfigDict(extra="forbid")

    header: OrderHeader
    items: list[LineItemInput] = Field(default_factory=list)
    confirmation_token: str | None = None


class SubmissionResult(SQLModel):
    """
    Outcome of a submission attempt.

    proceed=False is a normal outcome: show `novel_fields` and resubmit
    the same data together with `confirmation_token`.
    """

    proceed: bool
    state: ConfirmationState
    novel_fields: list[str] = Field(default_factory=list)
    confirmation_token: str | None = None
    order_number: str | None = None
    upserted_items: int = 0
    deleted_items: int = 0


class LineItemView(SQLModel):
    """
    Representation of a single line item with its derived total.
    """

    id: uuid.UUID | str | None = None
    order_number: str
    product_model: str | None = None
    color: str | None = None
    specification: str | None = None
    quantity: int
    unit_price: float
    is_shipped: bool
    line_total: float


class ComputedOrderView(SQLModel):
    """
    Per-order dashboard row. Recomputed on every aggregation, never stored.
    """

    order_number: str
    order_date: date | None
    customer_name: str | None
    final_price: float
    customer_order_seq: int
    total_quantity: int
    paid_amount: float
    receivable: float
    is_settled: bool
    is_shipped: bool
    is_completed: bool
    items: list[LineItemView] = Field(default_factory=list)


class DashboardRead(SQLModel):
    """
    Dashboard payload: computed views (newest first) plus orphan counts.

    The counts are None for a customer search, where items and payments
    of the orders filtered out cannot be told apart from orphans.
    """

    orders: list[ComputedOrderView]
    dropped_items: int | None = 0
    dropped_payments: int | None = 0


class OrderEditRead(SQLModel):
    """
    Everything the edit form needs to pre-populate itself.

    order_number_suffix is whatever follows the 8-digit date prefix, so
    the form can be resubmitted unchanged.
    """

    order_number: str
    order_number_suffix: str
    order_date: date | None
    customer_name: str | None
    final_price: float
    items: list[LineItemView]
    items_subtotal: float
    discount: float
    paid_amount: float
    receivable: float
