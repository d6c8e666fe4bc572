"""
Request id and metrics middleware
"""
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from listing_extraction.core.logging_config import LoggingConfig
from listing_extraction.core.metrics import (http_request_duration_seconds,
                                             http_requests_total)

logger = LoggingConfig.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every log record of a request with its id and echoes the id back"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        LoggingConfig.set_context(request_id=request_id, path=request.url.path)
        started = time.perf_counter()
        logger.debug(f"{request.method} {request.url.path} started")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{request.method} {request.url.path} raised")
            raise
        finally:
            LoggingConfig.clear_context()

        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={"request_id": request_id, "duration_ms": int((time.perf_counter() - started) * 1000)},
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests and observes their duration, except scrapes of /metrics"""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            http_requests_total.labels(
                method=request.method, endpoint=request.url.path, status_code=str(status_code)
            ).inc()
            http_request_duration_seconds.labels(
                method=request.method, endpoint=request.url.path
            ).observe(time.perf_counter() - started)
