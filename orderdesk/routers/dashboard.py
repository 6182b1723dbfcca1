# orderdesk/routers/dashboard.py
from fastapi import APIRouter, Depends

from orderdesk.core.auth import require_auth
from orderdesk.core.config import get_settings
from orderdesk.database import StoreFactory, get_store_factory
from orderdesk.schemas.order import DashboardRead
from orderdesk.services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

service = DashboardService(timeout=get_settings().DASHBOARD_READ_TIMEOUT)


@router.get(
    "",
    response_model=DashboardRead,
    dependencies=[Depends(require_auth)],
)
def get_dashboard(
    search: str | None = None,
    factory: StoreFactory = Depends(get_store_factory),
):
    """
    Computed view of every order, newest first.

    Query params (optional):
      - search: case-insensitive substring of the customer name

    Returns 503 if any of orders / items / payments could not be loaded.
    """
    return service.get_dashboard(factory, search)
