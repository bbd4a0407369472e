"""Request ID and access logging middleware.

Every response carries an ``X-Request-ID`` header (echoed from the client or
generated) and the ID is bound into structlog contextvars so all log entries
for the request share the same ``request_id`` field.

Action tokens are bearer credentials and may arrive in the URL path, so the
access log records the path with any token replaced and never the query
string.
"""

from __future__ import annotations

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

SERVICE_NAME = "collab-actions"
REDACTED = "[redacted]"

_TOKEN_IN_PATH = re.compile(r"(/collab-action/redeem/)[^/?#]+")

logger = structlog.get_logger()


def redact_path(path: str) -> str:
    """Return *path* (or a full URL) with an action token in the path replaced."""
    return _TOKEN_IN_PATH.sub(rf"\g<1>{REDACTED}", path)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every HTTP request/response cycle."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Bind a request ID, log the completed request, and echo the ID.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or route handler.

        Returns:
            The HTTP response with ``X-Request-ID`` header set.
        """
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, service=SERVICE_NAME)

        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "http_request_completed",
            method=request.method,
            path=redact_path(request.url.path),
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        response.headers["X-Request-ID"] = request_id
        return response
