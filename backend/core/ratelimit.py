# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Per-client-IP request limits.

* Every request: ``API_LIMIT`` (applied by ``SlowAPIMiddleware``).
* ``POST /api/auth/login``: ``LOGIN_LIMIT``.
* ``POST /api/auth/register``: ``REGISTER_LIMIT``.

Counters live in process memory.  ``main.create_app`` switches the limiter
on or off from ``Settings.rate_limit_enabled``.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.logger import get_logger

log = get_logger("ratelimit")

API_LIMIT = "100/15minutes"
LOGIN_LIMIT = "5/15minutes"
REGISTER_LIMIT = "3/hour"

limiter = Limiter(key_func=get_remote_address, default_limits=[API_LIMIT])


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # Plain function: SlowAPIMiddleware calls it synchronously.
    client_ip = request.client.host if request.client else "unknown"
    log.warning("Rate limit hit on %s %s by %s (%s)", request.method, request.url.path, client_ip, exc.detail)
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests, please try again later.", "code": "rate_limited"},
    )
