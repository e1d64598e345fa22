"""
Request logging middleware.
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware

from ...utils.logging import get_logger

logger = get_logger("http")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request."""

    async def dispatch(self, request, call_next):
        started = time.perf_counter()
        resp = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {resp.status_code} ({elapsed_ms:.1f} ms)"
        )
        return resp
