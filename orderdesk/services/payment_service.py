# orderdesk/services/payment_service.py
import logging
import uuid

from fastapi import HTTPException, status

from orderdesk.core.errors import StorageError
from orderdesk.repositories.store import ORDERS, PAYMENTS, RecordFilter, RecordStore
from orderdesk.schemas.payment import PaymentCreate, PaymentRead

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Records money received against an order.

    Payments are append-only; the dashboard only uses their per-order sum.
    """

    def record_payment(
        self,
        store: RecordStore,
        order_number: str,
        payload: PaymentCreate,
    ) -> PaymentRead:
        try:
            if not store.read(ORDERS, RecordFilter(eq={"order_number": order_number})):
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Order not found",
                )
            rows = store.insert(
                PAYMENTS,
                {
                    "id": uuid.uuid4(),
                    "order_number": order_number,
                    "amount": payload.amount,
                },
            )
        except StorageError as exc:
            logger.error("Recording payment for %s failed: %s", order_number, exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=str(exc),
            )

        logger.info("Recorded payment of %.2f for order %s", payload.amount, order_number)
        return PaymentRead.model_validate(rows[0])
