"""
Inkwell Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Rate Limit  │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────┐ ┌────────────┐ ┌──────────┐ ┌─────┐ │
    │  │ /api/notes │ │/api/folders│ │/api/teams│ │/hlth│ │
    │  └────────────┘ └────────────┘ └──────────┘ └─────┘ │
    │                                                     │
    │  Exception Handlers:                                │
    │  400 Validation │ 401 Auth │ 403 Permission         │
    │  404 NotFound   │ 409 InvalidState │ 500 Database   │
    │                                                     │
    │  Background: TrashSweeper (asyncio task)            │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config validation → start trash sweeper
    Shutdown: stop trash sweeper → dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import (
    AuthenticationError,
    DatabaseError,
    InkwellError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import folders, health, notes, tags, teams
from app.services.trash_sweeper import trash_sweeper

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once in the lifespan, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every query/connection at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:
        1. Setup logging
        2. Validate deployment settings (logged, not fatal: local SQLite runs
           are allowed and /health must stay reachable)
        3. Start the trash expiry sweeper

    Shutdown:
        1. Cancel the sweeper
        2. Dispose the database engine
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Inkwell Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.warning("Configuration check: %s", str(e))

    logger.info(
        "Trash retention: %d days (lazy sweep %s)",
        settings.trash_retention_days,
        "on" if settings.trash_lazy_sweep else "off",
    )
    trash_sweeper.start()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Inkwell Backend shutting down...")
    await trash_sweeper.stop()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(status_code: int, exc: InkwellError, details: bool = False, **kwargs) -> JSONResponse:
    content = {
        "error": exc.error_code,
        "message": exc.message,
        "request_id": request_id_var.get(""),
    }
    if details:
        content["details"] = exc.context
    return JSONResponse(status_code=status_code, content=content, **kwargs)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and a consistent JSON body.

    Handler hierarchy:
        ValidationError         → 400 (details: field, all messages)
        AuthenticationError     → 401
        PermissionDeniedError   → 403 (deciding rule logged, never returned)
        NotFoundError           → 404
        InvalidStateError       → 409
        RateLimitExceededError  → 429
        DatabaseError           → 500
        SQLAlchemyError         → 500 (unwrapped store failure)
        InkwellError (base)     → 500
        Exception (fallback)    → 500

    Security: responses never carry stack traces, SQL, or which rule
    (team role vs. direct share) caused a denial.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        if exc.errors:
            exc.context["errors"] = exc.errors
        return _error_response(400, exc, details=True)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, exc)

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning(
            "[%s] Permission denied: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return _error_response(403, exc)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, exc)

    @app.exception_handler(InvalidStateError)
    async def handle_invalid_state(request: Request, exc: InvalidStateError):
        logger.info("[%s] Invalid state: %s", request_id_var.get(""), exc.message)
        return _error_response(409, exc)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429, exc, details=True, headers={"Retry-After": str(exc.retry_after)}
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, exc)

    @app.exception_handler(SQLAlchemyError)
    async def handle_sqlalchemy_error(request: Request, exc: SQLAlchemyError):
        rid = request_id_var.get("")
        logger.error("[%s] Unhandled database error: %s", rid, str(exc), exc_info=True)
        return _error_response(
            500, DatabaseError(context={"original_error": type(exc).__name__})
        )

    @app.exception_handler(InkwellError)
    async def handle_inkwell_error(request: Request, exc: InkwellError):
        logger.error("[%s] Application error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, exc)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all; the stack trace is logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests build the app through this factory and override get_db_session;
    the module-level `app` below is what uvicorn serves.
    """
    app = FastAPI(
        title="Inkwell API",
        description=(
            "Collaborative notes: personal and team notes with direct sharing, "
            "role-based permissions, folders, starring and a 30-day trash."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(notes.router)
    app.include_router(folders.router)
    app.include_router(tags.router)
    app.include_router(teams.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `app.main:app` to be importable
app = create_app()
