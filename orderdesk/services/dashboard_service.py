# orderdesk/services/dashboard_service.py
import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait

from fastapi import HTTPException, status

from orderdesk.core.errors import PartialFetchFailure
from orderdesk.database import StoreFactory
from orderdesk.engine.aggregator import AggregationDiagnostics, aggregate
from orderdesk.repositories.store import ITEMS, ORDERS, PAYMENTS, Record, RecordFilter
from orderdesk.schemas.order import DashboardRead

logger = logging.getLogger(__name__)


class DashboardService:
    """
    Orchestrates the order dashboard.

    The three inputs (orders, items, payments) are read concurrently and
    joined by a barrier: aggregation only starts once all three have
    loaded, and a single failed read aborts the whole pass.
    """

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    def get_dashboard(self, factory: StoreFactory, search: str | None = None) -> DashboardRead:
        try:
            orders, items, payments = self.fetch_inputs(factory, search)
        except PartialFetchFailure as exc:
            logger.error("Dashboard aggregation aborted: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=str(exc),
            )

        diagnostics = AggregationDiagnostics()
        views = aggregate(orders, items, payments, diagnostics)
        if search and search.strip():
            return DashboardRead(orders=views, dropped_items=None, dropped_payments=None)
        return DashboardRead(
            orders=views,
            dropped_items=diagnostics.dropped_items,
            dropped_payments=diagnostics.dropped_payments,
        )

    def fetch_inputs(
        self,
        factory: StoreFactory,
        search: str | None = None,
    ) -> tuple[list[Record], list[Record], list[Record]]:
        """
        Read orders, items and payments in parallel.

        Args:
            factory: opens one store per read
            search: optional case-insensitive customer-name substring;
                filters orders only

        Raises:
            PartialFetchFailure: if any read fails or does not finish within
                the timeout. No partial result is returned.
        """
        search = (search or "").strip()
        reads: dict[str, RecordFilter | None] = {
            ORDERS: RecordFilter(ilike={"customer_name": search}) if search else None,
            ITEMS: None,
            PAYMENTS: None,
        }

        pool = ThreadPoolExecutor(max_workers=len(reads), thread_name_prefix="dashboard-read")
        try:
            futures = {
                pool.submit(self._read, factory, table, flt): table
                for table, flt in reads.items()
            }
            done, pending = wait(futures, timeout=self.timeout, return_when=FIRST_EXCEPTION)

            for future in done:
                error = future.exception()
                if error is not None:
                    raise PartialFetchFailure(futures[future], error) from error
            if pending:
                table = futures[next(iter(pending))]
                raise PartialFetchFailure(
                    table,
                    TimeoutError(f"no response within {self.timeout}s"),
                )

            results = {futures[future]: future.result() for future in done}
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        return results[ORDERS], results[ITEMS], results[PAYMENTS]

    @staticmethod
    def _read(factory: StoreFactory, table: str, flt: RecordFilter | None) -> list[Record]:
        with factory() as store:
            return store.read(table, flt)
