# orderdesk/models/order.py
import uuid
from datetime import date

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Order header.

    Identity:
      - order_number: "<YYYYMMDD><suffix>", globally unique

    final_price is the negotiated total entered by the operator; it is
    stored as-is and never derived from the line items.
    """

    __tablename__ = "orders"

    order_number: str = Field(
        primary_key=True,
        index=True,
        description="Date prefix + operator sequence suffix",
    )

    order_date: date = Field(
        index=True,
        description="Date the order was placed",
    )

    customer_name: str = Field(
        index=True,
        description="Customer display name",
    )

    final_price: float = Field(
        default=0.0,
        ge=0,
        description="Authoritative negotiated total",
    )


class LineItem(SQLModel, table=True):
    """
    Product row inside an order.

    The id is assigned when the row is created and kept across edits so
    that an edited collection can be diffed against its snapshot.
    line_total (quantity * unit_price) is derived and not a column.
    """

    __tablename__ = "items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        foreign_key="orders.order_number",
        index=True,
    )

    product_model: str = Field(
        default="",
        description="Product model code",
    )
    color: str | None = None
    specification: str | None = None

    quantity: int = Field(
        default=0,
        ge=0,
        description="Quantity ordered (>= 0)",
    )

    unit_price: float = Field(
        default=0.0,
        ge=0,
        description="Unit price at time of order",
    )

    is_shipped: bool = Field(
        default=False,
        index=True,
    )


class Payment(SQLModel, table=True):
    """
    Money received against an order. Only the per-order sum matters.
    """

    __tablename__ = "payments"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        foreign_key="orders.order_number",
        index=True,
    )

    amount: float = Field(
        default=0.0,
        ge=0,
    )
