from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .logging_config import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def client_ip(request: Request) -> str:
    """Return the caller address, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


# PUBLIC_INTERFACE
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Assign a request id, log each request and its outcome, and echo the id back
    in the X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        path = request.url.path
        target = f"{path}?{request.url.query}" if request.url.query else path
        logger.info("==> %s %s | IP: %s", request.method, target, client_ip(request))

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "<== %s %s | Status: %d | Duration: %.1fms",
                request.method,
                path,
                status_code,
                duration_ms,
            )
            request_id_var.reset(token)
