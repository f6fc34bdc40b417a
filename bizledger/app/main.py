"""
Business Ledger Backend: FastAPI application.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from bizledger.app.core.config import settings
from bizledger.app.core.observability import ObservabilityMiddleware, configure_logging
from bizledger.app.core.redis_client import close_redis, ping_redis
from bizledger.app.api.v1.router import router as api_v1_router
from bizledger.app.db.session import engine, get_db, init_models, ping_database
from bizledger.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Register every table on Base before init_models()
from bizledger.app.models import (  # noqa: F401
    sale, payment_schedule, expenditure, ledger_entry, ledger_backfill_log, audit_log
)

logger = logging.getLogger("bizledger")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_models()
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Double-entry ledger backfill and trial balance validation",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Liveness plus dependency reachability.

    The service stays "healthy" with the cache down: reports are then
    recomputed on every request.
    """
    database_up = await ping_database(db)
    return {
        "status": "healthy" if database_up else "degraded",
        "version": settings.api_version,
        "database": "up" if database_up else "down",
        "cache": "up" if await ping_redis() else "down",
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.app_name} API",
        "docs": "/docs",
        "health": "/health",
    }
