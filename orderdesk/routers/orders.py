# orderdesk/routers/orders.py
from fastapi import APIRouter, Depends, Response, status

from orderdesk.core.auth import require_auth
from orderdesk.core.config import get_settings
from orderdesk.database import get_store
from orderdesk.engine.suggestions import Vocabularies
from orderdesk.repositories.store import RecordStore
from orderdesk.schemas.order import OrderEditRead, OrderSubmit, SubmissionResult
from orderdesk.services.order_service import OrderService
from orderdesk.services.suggestion_service import get_vocabularies

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    dependencies=[Depends(require_auth)],
)

service = OrderService(token_key=get_settings().SUPABASE_JWT_SECRET)


@router.post(
    "",
    response_model=SubmissionResult,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderSubmit,
    response: Response,
    store: RecordStore = Depends(get_store),
    vocabularies: Vocabularies = Depends(get_vocabularies),
):
    """
    Create an order with its line items.

    If the customer, a product model or a color is not in its vocabulary,
    nothing is saved: the response has proceed=false (HTTP 200), the list
    of novel values and a confirmation_token. Re-send the same body with
    that token to save anyway; any change to the data needs a fresh check.
    """
    result = service.create_order(store, payload, vocabularies)
    if not result.proceed:
        response.status_code = status.HTTP_200_OK
    return result


@router.get(
    "/{order_number}",
    response_model=OrderEditRead,
)
def get_order(
    order_number: str,
    store: RecordStore = Depends(get_store),
):
    """
    Load an order for the edit form (items, paid sum, receivable).
    """
    return service.get_order_for_edit(store, order_number)


@router.put(
    "/{order_number}",
    response_model=SubmissionResult,
)
def update_order(
    order_number: str,
    payload: OrderSubmit,
    store: RecordStore = Depends(get_store),
    vocabularies: Vocabularies = Depends(get_vocabularies),
):
    """
    Save an edited order.

    Same confirmation flow as create. Items missing from the body are
    deleted, every other item is upserted by id. Changing the date or
    suffix renumbers the order.
    """
    return service.update_order(store, order_number, payload, vocabularies)


@router.delete(
    "/{order_number}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_order(
    order_number: str,
    store: RecordStore = Depends(get_store),
):
    """
    Delete an order together with its items and payments.
    """
    service.delete_order(store, order_number)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
