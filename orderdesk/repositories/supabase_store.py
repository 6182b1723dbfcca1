# orderdesk/repositories/supabase_store.py
"""
RecordStore over Supabase PostgREST tables.

Mirrors the data path of the browser client: tables are read and written
directly through supabase-py, with RLS bypassed by the service role key.
"""
import logging
import uuid
from datetime import date, datetime
from typing import Any

from postgrest.exceptions import APIError
from supabase import Client

from orderdesk.core.errors import ConstraintViolation, StorageError
from orderdesk.repositories.store import Record, RecordFilter, as_record_list

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def _jsonable(value: Any) -> Any:
    """Convert UUIDs and dates into the strings PostgREST expects."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return value


class SupabaseStore:
    def __init__(self, client: Client):
        self.client = client

    def _filtered(self, query, flt: RecordFilter | None):
        if flt is None:
            return query
        for name, value in flt.eq.items():
            query = query.eq(name, _jsonable(value))
        for name, text in flt.ilike.items():
            query = query.ilike(name, f"%{text}%")
        for name, values in flt.in_.items():
            query = query.in_(name, _jsonable(list(values)))
        return query

    def _execute(self, query, table: str):
        try:
            return query.execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise ConstraintViolation(exc.message or str(exc)) from exc
            logger.error("Supabase request on '%s' failed: %s", table, exc)
            raise StorageError(exc.message or str(exc)) from exc

    def read(self, table: str, flt: RecordFilter | None = None) -> list[Record]:
        if flt is not None and flt.matches_nothing():
            return []
        query = self._filtered(self.client.table(table).select("*"), flt)
        return list(self._execute(query, table).data or [])

    def insert(self, table: str, records: Record | list[Record]) -> list[Record]:
        payload = _jsonable(as_record_list(records))
        response = self._execute(self.client.table(table).insert(payload), table)
        return list(response.data or [])

    def upsert(
        self,
        table: str,
        records: Record | list[Record],
        conflict_key: str,
    ) -> list[Record]:
        payload = _jsonable(as_record_list(records))
        query = self.client.table(table).upsert(payload, on_conflict=conflict_key)
        return list(self._execute(query, table).data or [])

    def delete(self, table: str, flt: RecordFilter) -> int:
        if flt is None or flt.is_empty():
            raise ValueError("Refusing to delete without a filter")
        if flt.matches_nothing():
            return 0
        query = self._filtered(self.client.table(table).delete(), flt)
        return len(self._execute(query, table).data or [])
