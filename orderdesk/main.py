# orderdesk/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from orderdesk.core.config import get_settings
from orderdesk.database import create_db_and_tables

# Routers
from orderdesk.routers.dashboard import router as dashboard_router
from orderdesk.routers.orders import router as orders_router
from orderdesk.routers.payments import router as payments_router
from orderdesk.routers.suggestions import router as suggestions_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - STORAGE_BACKEND=sql: verify DB connectivity and create tables.
      - STORAGE_BACKEND=supabase: tables are managed in the Supabase
        project; nothing to create.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    if settings.STORAGE_BACKEND != "sql":
        logger.info("Startup: using Supabase tables (%s)", settings.SUPABASE_URL)
        yield
        return

    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise
    yield


app = FastAPI(
    title=settings.PROJECT_NAME or "Order Desk API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(dashboard_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(payments_router, prefix=settings.API_V1_STR)
app.include_router(suggestions_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "orderdesk-backend"}
