"""
Inkwell Backend — Rate Limiting Middleware
===========================================

What:  Per-caller sliding window rate limiter.
Why:   Bulk purge and empty-trash endpoints do real work per request; one
       misbehaving client should not starve the others.
How:   Keeps request timestamps per key in memory. The key is the X-User-ID
       header when present, otherwise the client IP, so users behind one
       NAT do not share a budget.

Algorithm: Sliding Window Log
    1. Drop the key's timestamps older than the window
    2. If the remaining count >= limit, reject with 429 + Retry-After
    3. Otherwise record now and let the request through

Limitation:
    State is per process. With several workers each enforces its own window.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import settings
from app.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

CLEANUP_EVERY = 1000


def rate_limit_key(request: Request) -> str:
    user_id = request.headers.get("X-User-ID", "").strip()
    if user_id:
        return f"user:{user_id}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Runs before RequestIDMiddleware, so a rejected request carries no
    request ID.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = rate_limit_key(request)
        now = time.time()
        window_start = now - settings.rate_limit_window

        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= settings.rate_limit_requests:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key, len(timestamps), settings.rate_limit_window,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": exc.error_code,
                    "message": exc.message,
                    "details": {"retry_after": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._cleanup_inactive(window_start)

        return await call_next(request)

    def _cleanup_inactive(self, window_start: float) -> None:
        """Drop keys with no requests inside the current window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Cleaned up %d inactive rate-limit keys", len(inactive))
