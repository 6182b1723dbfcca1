# orderdesk/schemas/payment.py
import uuid

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class PaymentCreate(SQLModel):
    """
    Payload for recording a payment against an order.
    """

    model_config = ConfigDict(extra="forbid")

    amount: float = Field(ge=0)


class PaymentRead(SQLModel):
    id: uuid.UUID
    order_number: str
    amount: float
