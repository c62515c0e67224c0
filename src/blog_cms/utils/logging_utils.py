"""
Request logging for the HTTP surface.

`RequestLoggingMiddleware` writes one access line per request with its status and duration,
and warns when a request is slower than `SLOW_REQUEST_THRESHOLD_MS`. The duration is also
returned to the client in the `X-Response-Time` header (milliseconds).
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from blog_cms.managers.logging_manager import get_logger

logger = get_logger(prefix="[HTTP]")
perf_logger = get_logger(prefix="[HTTP_PERFORMANCE]")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, slow_threshold_ms: float = 1000.0):
        super().__init__(app)
        self.slow_threshold_ms = slow_threshold_ms

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error("%s %s failed after %.1fms", request.method, request.url.path, duration_ms)
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Response-Time"] = f"{duration_ms:.1f}ms"
        logger.info("%s %s %d %.1fms", request.method, request.url.path, response.status_code, duration_ms)
        if duration_ms > self.slow_threshold_ms:
            perf_logger.warning(
                "Slow request: %s %s took %.1fms (threshold %.0fms)",
                request.method,
                request.url.path,
                duration_ms,
                self.slow_threshold_ms,
            )
        return response
