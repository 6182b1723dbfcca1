# orderdesk/services/order_service.py
import logging
import uuid

from fastapi import HTTPException, status

from orderdesk.core.errors import ConstraintViolation, MissingInput, StorageError
from orderdesk.engine.aggregator import aggregate
from orderdesk.engine.confirmation import (
    GateDecision,
    state_from_token,
    submission_fingerprint,
)
from orderdesk.engine.editing import EditSession, discount
from orderdesk.engine.suggestions import Vocabularies
from orderdesk.repositories.store import (
    ITEMS,
    ORDERS,
    PAYMENTS,
    Record,
    RecordFilter,
    RecordStore,
)
from orderdesk.schemas.order import (
    LineItemInput,
    OrderEditRead,
    OrderHeader,
    OrderSubmit,
    SubmissionResult,
)

logger = logging.getLogger(__name__)

# Date prefix of every order number (YYYYMMDD)
DATE_PREFIX_LENGTH = 8


class OrderService:
    """
    Business logic for order submission.

    Responsibilities:
      - Run the confirmation gate on every create / edit
      - Build the order number from date + suffix
      - Create: insert the order, then its items (all unshipped)
      - Edit: upsert the order, reconcile items against the stored
        snapshot, delete removed rows and upsert the rest
      - Load an order for the edit form
      - Delete an order with its items and payments (admin action)

    token_key signs the confirmation tokens handed to blocked callers.
    """

    def __init__(self, token_key: str):
        self.token_key = token_key

    # -------- Submission --------

    def create_order(
        self,
        store: RecordStore,
        payload: OrderSubmit,
        vocabularies: Vocabularies,
    ) -> SubmissionResult:
        """
        Create a new order.

        Steps:
          1. Gate: block on novel values unless the token confirms them.
          2. Build the order number (400 if date or suffix is blank).
          3. Insert the order row (409 on a duplicate order number).
          4. Insert the items with fresh ids and is_shipped=False. Ids sent
             by the caller are discarded. If this insert fails the order
             row is removed again.
        """
        session = self._session(payload)
        decision = session.submit(vocabularies)
        if not decision.proceed:
            return self._blocked(payload, decision)

        order_number = self._order_number(session)
        items = [
            item.model_copy(update={"id": uuid.uuid4(), "is_shipped": False})
            for item in self._plan(session).to_upsert
        ]

        try:
            store.insert(ORDERS, self._order_record(order_number, session.header))
        except StorageError as exc:
            session.mark_failed()
            self._raise_storage_error(exc, order_number)

        if items:
            try:
                store.insert(ITEMS, [self._item_record(order_number, it) for it in items])
            except StorageError as exc:
                session.mark_failed()
                self._discard_order(store, order_number)
                self._raise_storage_error(exc, order_number)

        session.mark_persisted()
        logger.info("Created order %s with %d item(s)", order_number, len(items))
        return SubmissionResult(
            proceed=True,
            state=session.state,
            order_number=order_number,
            upserted_items=len(items),
        )

    def update_order(
        self,
        store: RecordStore,
        order_number: str,
        payload: OrderSubmit,
        vocabularies: Vocabularies,
    ) -> SubmissionResult:
        """
        Save an edited order.

        Steps:
          1. 404 if the order being edited does not exist.
          2. Snapshot the stored item ids of that order.
          3. Gate, then build the (possibly new) order number.
          4. 409 if the new number belongs to another stored order.
          5. 400 if an item id is stored under a different order.
          6. Upsert the order row keyed by order_number.
          7. Delete items removed in the edit; upsert every remaining item
             keyed by id, pointing at the new order number.
        """
        self._get_order_record(store, order_number)
        prior = self._read(store, ITEMS, RecordFilter(eq={"order_number": order_number}))
        prior_ids = frozenset(uuid.UUID(str(row["id"])) for row in prior)

        session = self._session(payload, prior_ids)
        decision = session.submit(vocabularies)
        if not decision.proceed:
            return self._blocked(payload, decision)

        new_number = self._order_number(session)
        if new_number != order_number:
            if self._read(store, ORDERS, RecordFilter(eq={"order_number": new_number})):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Order {new_number} already exists",
                )
            logger.warning(
                "Order %s renumbered to %s; items follow, payments stay on the old number",
                order_number,
                new_number,
            )

        plan = self._plan(session)
        self._check_item_ownership(store, order_number, plan.upsert_ids - prior_ids)
        try:
            store.upsert(
                ORDERS,
                self._order_record(new_number, session.header),
                conflict_key="order_number",
            )
            if plan.to_delete:
                store.delete(ITEMS, RecordFilter(in_={"id": sorted(plan.to_delete, key=str)}))
            if plan.to_upsert:
                store.upsert(
                    ITEMS,
                    [self._item_record(new_number, it) for it in plan.to_upsert],
                    conflict_key="id",
                )
        except StorageError as exc:
            session.mark_failed()
            self._raise_storage_error(exc, new_number)

        session.mark_persisted()
        logger.info(
            "Updated order %s: %d item(s) upserted, %d deleted",
            new_number,
            len(plan.to_upsert),
            len(plan.to_delete),
        )
        return SubmissionResult(
            proceed=True,
            state=session.state,
            order_number=new_number,
            upserted_items=len(plan.to_upsert),
            deleted_items=len(plan.to_delete),
        )

    # -------- Edit form / admin --------

    def get_order_for_edit(self, store: RecordStore, order_number: str) -> OrderEditRead:
        """
        Order, items (with line totals), paid sum and receivable for one order.
        """
        order = self._get_order_record(store, order_number)
        flt = RecordFilter(eq={"order_number": order_number})
        items = self._read(store, ITEMS, flt)
        payments = self._read(store, PAYMENTS, flt)

        view = aggregate([order], items, payments)[0]
        subtotal = sum(it.line_total for it in view.items)
        suffix = order_number[DATE_PREFIX_LENGTH:] if len(order_number) > DATE_PREFIX_LENGTH else ""

        return OrderEditRead(
            order_number=view.order_number,
            order_number_suffix=suffix,
            order_date=view.order_date,
            customer_name=view.customer_name,
            final_price=view.final_price,
            items=view.items,
            items_subtotal=subtotal,
            discount=discount(subtotal, view.final_price),
            paid_amount=view.paid_amount,
            receivable=view.receivable,
        )

    def delete_order(self, store: RecordStore, order_number: str) -> None:
        """
        Remove an order with its items and payments.

        Never called by submission; this is the dashboard's delete button.
        """
        self._get_order_record(store, order_number)
        flt = RecordFilter(eq={"order_number": order_number})
        try:
            deleted_items = store.delete(ITEMS, flt)
            deleted_payments = store.delete(PAYMENTS, flt)
            store.delete(ORDERS, flt)
        except StorageError as exc:
            self._raise_storage_error(exc, order_number)

        logger.info(
            "Deleted order %s (%d item(s), %d payment(s))",
            order_number,
            deleted_items,
            deleted_payments,
        )

    # -------- Helpers --------

    def _session(
        self,
        payload: OrderSubmit,
        prior_ids: frozenset[uuid.UUID] = frozenset(),
    ) -> EditSession:
        """Rebuild the caller's edit session from the request body."""
        return EditSession(
            header=payload.header,
            items=list(payload.items),
            prior_ids=prior_ids,
            state=state_from_token(
                payload.confirmation_token,
                payload.header,
                payload.items,
                key=self.token_key,
            ),
        )

    def _blocked(self, payload: OrderSubmit, decision: GateDecision) -> SubmissionResult:
        logger.info("Submission held for confirmation: %s", "; ".join(decision.novel_fields))
        return SubmissionResult(
            proceed=False,
            state=decision.next_state,
            novel_fields=decision.novel_fields,
            confirmation_token=submission_fingerprint(
                payload.header, payload.items, key=self.token_key
            ),
        )

    def _order_number(self, session: EditSession) -> str:
        try:
            return session.order_number()
        except MissingInput as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"field": exc.field, "message": str(exc)},
            )

    def _plan(self, session: EditSession):
        try:
            return session.plan()
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc),
            )

    def _read(self, store: RecordStore, table: str, flt: RecordFilter) -> list[Record]:
        try:
            return store.read(table, flt)
        except StorageError as exc:
            logger.error("Reading '%s' failed: %s", table, exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=str(exc),
            )

    def _get_order_record(self, store: RecordStore, order_number: str) -> Record:
        rows = self._read(store, ORDERS, RecordFilter(eq={"order_number": order_number}))
        if not rows:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return rows[0]

    def _check_item_ownership(
        self,
        store: RecordStore,
        order_number: str,
        new_ids: set[uuid.UUID],
    ) -> None:
        """Reject item ids that are already stored under another order."""
        if not new_ids:
            return
        taken = self._read(store, ITEMS, RecordFilter(in_={"id": sorted(new_ids, key=str)}))
        if taken:
            logger.warning(
                "Edit of order %s referenced %d item(s) of other orders",
                order_number,
                len(taken),
            )
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Line items belong to another order",
                    "ids": sorted(str(row["id"]) for row in taken),
                },
            )

    def _discard_order(self, store: RecordStore, order_number: str) -> None:
        """Remove an order row whose items could not be saved."""
        try:
            store.delete(ORDERS, RecordFilter(eq={"order_number": order_number}))
        except StorageError as exc:
            logger.error("Could not remove incomplete order %s: %s", order_number, exc)
        else:
            logger.warning("Removed order %s after its items failed to save", order_number)

    def _raise_storage_error(self, exc: StorageError, order_number: str) -> None:
        if isinstance(exc, ConstraintViolation):
            logger.error("Order %s rejected by storage: %s", order_number, exc)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=str(exc),
            )
        logger.error("Storage failure while saving order %s: %s", order_number, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        )

    @staticmethod
    def _order_record(order_number: str, header: OrderHeader) -> Record:
        return {
            "order_number": order_number,
            "order_date": header.order_date,
            "customer_name": header.customer_name,
            "final_price": header.final_price,
        }

    @staticmethod
    def _item_record(order_number: str, item: LineItemInput) -> Record:
        return {
            "id": item.id,
            "order_number": order_number,
            "product_model": item.product_model,
            "color": item.color,
            "specification": item.specification,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "is_shipped": item.is_shipped,
        }
