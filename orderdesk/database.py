# orderdesk/database.py
from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, ContextManager, Iterator

from fastapi import Depends
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from orderdesk.core.config import get_settings
from orderdesk.core.supabase_client import supabase_tables
from orderdesk.repositories.store import RecordStore, SQLModelStore
from orderdesk.repositories.supabase_store import SupabaseStore

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Reason:
# Supabase Session mode limits the number of clients. If each backend
# process opens many connections (SQLAlchemy default pool_size 5+),
# you can easily hit:
#   "MaxClientsInSessionMode: max clients reached"
#
# The dashboard's three parallel reads queue for this one connection.
#
# sqlite:/// URLs are accepted for local development and tests; they
# get none of the pooler settings above.
# ---------------------------------------------------------


def _with_sslmode(db_url: str) -> str:
    """Append sslmode=require if it is not already present."""
    if "sslmode=" in db_url:
        return db_url
    if "?" in db_url:
        return db_url + "&sslmode=require"
    return db_url + "?sslmode=require"


def build_engine(db_url: str) -> Engine:
    """
    Create an engine for a Postgres or SQLite URL.
    """
    if db_url.startswith("sqlite"):
        return create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        _with_sslmode(db_url),
        echo=False,        # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


@lru_cache
def get_engine() -> Engine:
    """Process-wide engine, created on first use."""
    return build_engine(get_settings().DATABASE_URL)


def create_db_and_tables(engine: Engine | None = None) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    # Import models so SQLModel metadata is populated before create_all()
    from orderdesk.models import order as _order_models  # noqa: F401

    SQLModel.metadata.create_all(engine or get_engine())


StoreFactory = Callable[[], ContextManager[RecordStore]]


@contextmanager
def open_store() -> Iterator[RecordStore]:
    """
    Open a RecordStore on the configured backend.

    - STORAGE_BACKEND=sql      : SQLModelStore on a fresh Session
    - STORAGE_BACKEND=supabase : SupabaseStore on the cached table client

    Each call gets its own store, so concurrent readers never share a
    Session.
    """
    if get_settings().STORAGE_BACKEND == "supabase":
        yield SupabaseStore(supabase_tables())
        return

    with Session(get_engine()) as session:
        yield SQLModelStore(session)


def get_store_factory() -> StoreFactory:
    """
    FastAPI dependency returning the store opener.

    The dashboard opens one store per concurrent read; tests override this
    dependency to point at a temporary database.
    """
    return open_store


def get_store(factory: StoreFactory = Depends(get_store_factory)):
    """
    FastAPI dependency that yields one RecordStore for the request.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(store: RecordStore = Depends(get_store)):
            ...
    """
    with factory() as store:
        yield store
