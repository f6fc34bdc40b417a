"""
Observability: logging setup and request middleware.

Each request gets a correlation id (taken from X-Correlation-ID or
generated). It is held in a context variable so that every record logged
while the request runs, backfill progress included, carries it.
"""

import time
import uuid
import logging
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bizledger.app.core.config import settings

logger = logging.getLogger("bizledger")
request_logger = logging.getLogger("bizledger.request")

CORRELATION_HEADER = "X-Correlation-ID"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [%(correlation_id)s] %(message)s"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        # Request summary lines pass it explicitly via `extra`
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def configure_logging() -> None:
    """Attach one stream handler to the `bizledger` logger; safe to call twice."""
    logger.setLevel(settings.log_level.upper())
    if any(isinstance(f, CorrelationIdFilter) for h in logger.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = correlation_id_var.set(correlation_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "ip": request.client.host if request.client else "unknown",
        }
        message = "%s %s -> %d (%.2f ms)"
        args = (request.method, request.url.path, response.status_code, duration_ms)
        if response.status_code >= 500:
            request_logger.error(message, *args, extra=log_data)
        elif response.status_code >= 400:
            request_logger.warning(message, *args, extra=log_data)
        else:
            request_logger.info(message, *args, extra=log_data)

        return response
