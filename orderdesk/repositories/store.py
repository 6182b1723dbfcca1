# orderdesk/repositories/store.py
"""
Table-shaped storage collaborator.

Capability set (all backends):
  - read(table, filter)             -> list[dict]
  - insert(table, records)          -> list[dict]   (ConstraintViolation on duplicates)
  - upsert(table, records, key)     -> list[dict]   (insert-or-update keyed by `key`)
  - delete(table, filter)           -> int          (rows removed)

Records are plain dicts so the engine never sees backend types.
"""
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Protocol

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, col, select

from orderdesk.core.errors import ConstraintViolation
from orderdesk.models.order import LineItem, Order, Payment

ORDERS = "orders"
ITEMS = "items"
PAYMENTS = "payments"

Record = dict[str, Any]


@dataclass
class RecordFilter:
    """
    Conjunction of simple predicates.

      - eq:    field == value
      - ilike: case-insensitive substring match on a text field
      - in_:   field in values (an empty list matches nothing)
    """

    eq: dict[str, Any] = field(default_factory=dict)
    ilike: dict[str, str] = field(default_factory=dict)
    in_: dict[str, list[Any]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.eq or self.ilike or self.in_)

    def matches_nothing(self) -> bool:
        return any(len(values) == 0 for values in self.in_.values())


class RecordStore(Protocol):
    def read(self, table: str, flt: RecordFilter | None = None) -> list[Record]: ...

    def insert(self, table: str, records: Record | list[Record]) -> list[Record]: ...

    def upsert(
        self,
        table: str,
        records: Record | list[Record],
        conflict_key: str,
    ) -> list[Record]: ...

    def delete(self, table: str, flt: RecordFilter) -> int: ...


def as_record_list(records: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> list[Record]:
    if isinstance(records, Mapping):
        return [dict(records)]
    return [dict(r) for r in records]


class SQLModelStore:
    """
    RecordStore over SQLModel tables.

    Each call commits on its own; a failed commit is rolled back and
    uniqueness failures are re-raised as ConstraintViolation.
    """

    TABLES: dict[str, type[SQLModel]] = {
        ORDERS: Order,
        ITEMS: LineItem,
        PAYMENTS: Payment,
    }

    def __init__(self, session: Session):
        self.session = session

    # ---- internal helpers ----

    def _model(self, table: str) -> type[SQLModel]:
        try:
            return self.TABLES[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None

    def _where(self, stmt, model: type[SQLModel], flt: RecordFilter | None):
        if flt is None:
            return stmt
        for name, value in flt.eq.items():
            stmt = stmt.where(col(getattr(model, name)) == value)
        for name, text in flt.ilike.items():
            stmt = stmt.where(col(getattr(model, name)).ilike(f"%{text}%"))
        for name, values in flt.in_.items():
            stmt = stmt.where(col(getattr(model, name)).in_(list(values)))
        return stmt

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConstraintViolation(str(exc.orig)) from exc

    # ---- capability set ----

    def read(self, table: str, flt: RecordFilter | None = None) -> list[Record]:
        model = self._model(table)
        stmt = self._where(select(model), model, flt)
        return [row.model_dump() for row in self.session.exec(stmt).all()]

    def insert(self, table: str, records: Record | list[Record]) -> list[Record]:
        model = self._model(table)
        rows = [model.model_validate(r) for r in as_record_list(records)]
        self.session.add_all(rows)
        self._commit()
        for row in rows:
            self.session.refresh(row)
        return [row.model_dump() for row in rows]

    def upsert(
        self,
        table: str,
        records: Record | list[Record],
        conflict_key: str,
    ) -> list[Record]:
        model = self._model(table)
        key_column = col(getattr(model, conflict_key))

        rows = []
        for record in as_record_list(records):
            validated = model.model_validate(record)
            existing = self.session.exec(
                select(model).where(key_column == getattr(validated, conflict_key))
            ).first()
            if existing is None:
                self.session.add(validated)
                rows.append(validated)
                continue
            for name in record:
                setattr(existing, name, getattr(validated, name))
            self.session.add(existing)
            rows.append(existing)

        self._commit()
        for row in rows:
            self.session.refresh(row)
        return [row.model_dump() for row in rows]

    def delete(self, table: str, flt: RecordFilter) -> int:
        if flt is None or flt.is_empty():
            raise ValueError("Refusing to delete without a filter")
        model = self._model(table)
        rows = self.session.exec(self._where(select(model), model, flt)).all()
        for row in rows:
            self.session.delete(row)
        self._commit()
        return len(rows)
