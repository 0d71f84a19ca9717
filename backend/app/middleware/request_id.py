"""
Inkwell Backend — Request ID Middleware
========================================

What:  Tags each request with a correlation ID and the asserted caller id.
Why:   Every log line of one request (access log, lifecycle transitions,
       permission denials) can be tied together, and to the user who made it.
How:   Reads X-Request-ID (or generates a short UUID) and X-User-ID into
       ContextVars, and echoes the request ID back in the response header.
Who:   Applied to every request via Starlette middleware.

The actor id stored here is for logging only. Authorization never reads it:
routes get the caller from app.dependencies.get_current_actor, which
validates the header and passes an explicit Actor into the services.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local; concurrent requests on one thread each see their own value
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
actor_id_var: ContextVar[str] = ContextVar("actor_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID if sent, else generate an 8-char ID
        2. Store it (and the raw X-User-ID, if any) in ContextVars
        3. Expose the request ID on request.state for handlers
        4. Add X-Request-ID to the response
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request_id_var.set(rid)
        actor_id_var.set(request.headers.get("X-User-ID", ""))
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
