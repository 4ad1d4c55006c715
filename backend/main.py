# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
FastAPI application factory.

Responsibilities
----------------
* Build the long-lived collaborators (password hasher, token issuer,
  lockout policy, mailer, clock, attachment storage) from configuration and
  park them on ``app.state``, where the request dependencies find them.
* Register CORS, security headers, per-IP rate limits, request logging and
  the error handlers.
* Mount the feature routers (auth, admin, assets, reports) and the
  ``/uploads`` static directory.
* Expose a /health endpoint for container liveness checks.

``create_app`` takes optional overrides so tests can inject a recording
mailer, a frozen clock or cheaper hashing settings.
"""

import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from admin.router import router as admin_router
from assets.router import public_router as public_assets_router
from assets.router import router as assets_router
from assets.storage import AttachmentStorage
from auth.errors import AuthError, InternalError
from auth.router import router as auth_router
from auth.service import build_auth_components
from core.clock import SystemClock
from core.config import Settings, settings as default_settings
from core.logger import logger
from core.mailer import build_mailer
from core.ratelimit import limiter, rate_limit_exceeded_handler
from reports.router import router as reports_router


# ---------------------------------------------------------------------------
# Request-logging middleware
# ---------------------------------------------------------------------------
# Logs every inbound request: method, path, client IP, status, latency.
# Request bodies (passwords, uploads) are never echoed.


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """Log method, path, client IP, response status and latency (ms)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            "%s %s | client=%s status=%d latency=%.1fms",
            request.method,
            request.url.path,
            client_ip,
            response.status_code,
            elapsed_ms,
        )
        return response


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


class _SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add the standard hardening headers to every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        for name, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


async def _auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("Internal error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Server error", "code": "internal_error"})


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings = None, *, mailer=None, clock=None) -> FastAPI:
    settings = settings or default_settings
    clock = clock or SystemClock()

    app = FastAPI(title="Asset Manager", version="1.0.0")

    app.state.settings = settings
    app.state.clock = clock
    app.state.app_url = settings.app_url
    auth = build_auth_components(settings, clock)
    app.state.auth_config = auth.config
    app.state.password_hasher = auth.hasher
    app.state.token_issuer = auth.tokens
    app.state.lockout_policy = auth.lockout
    app.state.mailer = mailer or build_mailer(settings)
    app.state.attachment_storage = AttachmentStorage(
        settings.upload_dir,
        max_bytes=settings.max_upload_mb * 1024 * 1024,
    )

    # -- Rate limiting ---------------------------------------------------------
    # The limiter is shared by the route decorators, so the switch is global.
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # -- CORS ----------------------------------------------------------------
    # Origins come from CORS_ORIGINS; set it to the exact frontend origin in
    # production.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(_SecurityHeadersMiddleware)
    app.add_middleware(_RequestLogMiddleware)

    app.add_exception_handler(AuthError, _auth_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    # -- Routers -------------------------------------------------------------
    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(assets_router)
    app.include_router(public_assets_router)
    app.include_router(reports_router)

    @app.on_event("startup")
    async def _on_startup():
        logger.info("Asset Manager service starting up (db=%s)", settings.database_url.split("://")[0])

    @app.on_event("shutdown")
    async def _on_shutdown():
        logger.info("Asset Manager service shutting down")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # -- Uploaded attachments --------------------------------------------------
    # Mounted after the API routers so /api/* is handled by FastAPI first.
    app.mount(
        "/uploads",
        StaticFiles(directory=str(app.state.attachment_storage.root)),
        name="uploads",
    )

    return app


app = create_app()
