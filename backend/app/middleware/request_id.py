"""
Waterfall Manager Backend — Request ID Middleware
==================================================

What:  Tags every request with an ID, echoed back in X-Request-ID.
How:   Reuses the caller's X-Request-ID when present, otherwise a short
       UUID prefix. Stored in a ContextVar so exception handlers and
       loggers can read it without a Request object.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# coroutine-local; concurrent requests share a thread
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one, and echo it on the response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
