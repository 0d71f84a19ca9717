"""
Inkwell Backend — Request Logging Middleware
=============================================

What:  One access-log line per HTTP request.
Why:   Monitoring, debugging and auditing of who trashed or purged what.
How:   Times the request and logs method, path, status, duration, request ID,
       caller id and client IP. The level follows the status code.

Log Line:
    DELETE /api/notes/3f2a... 200 12.4ms [a1b2c3d4] user=7c9e... from 10.0.0.5

What we DON'T log: request bodies (note content is private) and the
X-User-Email header.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import actor_id_var, request_id_var

logger = logging.getLogger("inkwell.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request on completion.

    5xx → ERROR, 4xx → WARNING (403s and 409s are expected traffic for
    shared notes, but worth seeing), everything else → INFO.
    /health is skipped.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        actor = actor_id_var.get("") or "anonymous"
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            actor,
            client_ip,
            extra={
                "request_id": rid,
                "actor_id": actor,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
