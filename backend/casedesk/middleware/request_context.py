"""
Request context middleware.

Generates or propagates X-Request-ID and records the caller's org/role
headers in ContextVars so log lines emitted anywhere during the request can
be correlated.
"""

import time
import logging
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_org_id_var: ContextVar[str] = ContextVar("org_id", default="")


def get_request_id() -> str:
    """Get the current request ID from context."""
    return _request_id_var.get()


def get_org_id() -> str:
    return _org_id_var.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request_token = _request_id_var.set(request_id)
        org_token = _org_id_var.set(request.headers.get("X-Org-Id", ""))

        start_time = time.time()
        try:
            response = await call_next(request)
            duration_ms = round((time.time() - start_time) * 1000, 2)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "%s %s %s %.0fms",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={"duration_ms": duration_ms},
            )
        finally:
            _org_id_var.reset(org_token)
            _request_id_var.reset(request_token)

        return response
