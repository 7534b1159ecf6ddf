"""
Waterfall Manager Backend — FastAPI Application Factory
========================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() validates configuration, builds the token authenticator,
       registers middleware, exception handlers and routers.
Who:   uvicorn (uvicorn app.main:app) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                   FastAPI App                           │
    │                                                         │
    │  Middleware:  Request ID → Logging → GZip → CORS        │
    │                                                         │
    │  Routes:                                                │
    │    /api/lifecycle/transition   /api/lifecycle/phase/{id}│
    │    /api/lifecycle/project/{id} /api/projects[/{id}]     │
    │    /health                                              │
    │                                                         │
    │  Exception Handlers:                                    │
    │    ValidationError→400  AuthenticationError→401         │
    │    AuthorizationError→403  NotFoundError→404            │
    │    StorageError→500 (generic)  Exception→500            │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    create_app():  validate settings (JWT_SECRET) → ConfigurationError if absent
    Startup:       logging, wait for the database (tenacity backoff)
    Shutdown:      dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import Settings, settings
from app.database import dispose_engine, engine, wait_for_database
from app.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    StorageError,
    ValidationError,
    WaterfallError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import health, lifecycle, projects
from app.services.auth_service import TokenAuthenticator

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for the process.

    Format: 2024-01-15T12:00:00 [INFO] app.services.lifecycle_service: ...
    Output goes to stdout; containers collect it from there.
    """
    logging.basicConfig(
        level=getattr(logging, level or settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("Waterfall Manager backend %s starting up...", __version__)

    await wait_for_database(engine, settings.db_connect_attempts)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("Role claim policy: %s", app.state.authenticator.role_claim_policy)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Waterfall Manager backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: Optional[dict] = None) -> dict:
    body = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError          → 400 validation_error
        RequestValidationError   → 400 validation_error (malformed body/params)
        AuthenticationError      → 401 unauthorized + WWW-Authenticate: Bearer
        AuthorizationError       → 403 forbidden
        NotFoundError            → 404 not_found
        StorageError             → 500 server_error (generic message)
        WaterfallError (base)    → 500 server_error
        Exception (fallback)     → 500 internal_server_error

    Driver errors, SQL and stack traces are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), errors)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", "Request body is invalid", {"errors": errors}),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthorized", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(AuthorizationError)
    async def handle_authorization_error(request: Request, exc: AuthorizationError):
        logger.warning(
            "[%s] Role %s denied %s",
            request_id_var.get(""),
            exc.role,
            exc.operation,
        )
        return JSONResponse(
            status_code=403,
            content=_error_body("forbidden", exc.message),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error(
            "[%s] Storage error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "server_error", "An internal error occurred. Please try again later."
            ),
        )

    @app.exception_handler(WaterfallError)
    async def handle_application_error(request: Request, exc: WaterfallError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "server_error", "An internal error occurred. Please try again later."
            ),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(config: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Raises:
        ConfigurationError: JWT_SECRET (or another required setting) is missing.
            The process refuses to start rather than serving requests it
            cannot authenticate.
    """
    config = config or settings

    app = FastAPI(
        title="Waterfall Manager API",
        description=(
            "Project lifecycle tracking for waterfall-style delivery: "
            "phase transitions with an append-only audit ledger."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.authenticator = TokenAuthenticator.from_settings(config)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(lifecycle.router)
    app.include_router(projects.router)
    app.include_router(health.router)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
