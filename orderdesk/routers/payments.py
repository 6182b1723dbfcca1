# orderdesk/routers/payments.py
from fastapi import APIRouter, Depends, status

from orderdesk.core.auth import require_auth
from orderdesk.database import get_store
from orderdesk.repositories.store import RecordStore
from orderdesk.schemas.payment import PaymentCreate, PaymentRead
from orderdesk.services.payment_service import PaymentService

router = APIRouter(
    prefix="/orders",
    tags=["Payments"],
    dependencies=[Depends(require_auth)],
)

service = PaymentService()


@router.post(
    "/{order_number}/payments",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
def record_payment(
    order_number: str,
    payload: PaymentCreate,
    store: RecordStore = Depends(get_store),
):
    """
    Record a payment (amount >= 0) against an existing order.
    """
    return service.record_payment(store, order_number, payload)
