"""
Recuerdos Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance
       bound to one RecordStore (from STORE_BACKEND unless one is passed in).
Who:   uvicorn (`uvicorn recuerdos.main:app`) and the test suite.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware:  RateLimit → RequestID → Logging → GZip/CORS │
    │                                                           │
    │  Routes:      /api/recuerdos[...]   /api/stats/{userId}   │
    │               /api/calendar/{userId}[/year]   /health     │
    │                                                           │
    │  Service:     MemoryService(app.state.store)              │
    │                                                           │
    │  Exception handlers:                                      │
    │    Validation→400  NotFound→404  RateLimit→429            │
    │    StoreUnavailable→503  StoreTimeout→504  other→500      │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → configuration check → store.initialize()
    Shutdown: store.close() (disposes pools, closes HTTP clients)
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

from recuerdos import __version__
from recuerdos.config import settings
from recuerdos.exceptions import (
    NotFoundError,
    RateLimitExceededError,
    RecuerdosError,
    StoreTimeoutError,
    StoreUnavailableError,
    UnknownError,
    ValidationError,
)
from recuerdos.middleware.logging import RequestLoggingMiddleware
from recuerdos.middleware.rate_limit import RateLimitMiddleware
from recuerdos.middleware.request_id import RequestIDMiddleware, request_id_var
from recuerdos.routes import health, insights, memories
from recuerdos.stores import build_store
from recuerdos.stores.base import RecordStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: 2024-06-15T10:30:00 [INFO] recuerdos.access: GET /api/recuerdos 200 ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-query / per-request chatter from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    store: RecordStore = app.state.store

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Recuerdos Backend %s starting up (store=%s)", __version__, store.name)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health reports the store as unavailable
        logger.error("Configuration error: %s", str(e))

    try:
        await store.initialize()
    except RecuerdosError as e:
        logger.error("Store initialization failed: %s", e.message)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Recuerdos Backend shutting down...")
    await store.close()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: Optional[dict] = None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy to HTTP responses.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400
        NotFoundError                            → 404
        RateLimitExceededError                   → 429
        StoreTimeoutError                        → 504
        StoreUnavailableError                    → 503 + Retry-After
        UnknownError / RecuerdosError            → 500
        Exception (fallback)                     → 500

    Only validation errors return their context; everything else is logged
    server-side and answered with the exception's user-facing message.
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
        """Malformed JSON or wrongly typed parameters, reported like any other 400."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        field = location[-1] if location else None
        message = first.get("msg", "Invalid request")
        if field:
            message = f"Invalid value for {field}: {message}"
        logger.warning("[%s] Request validation error: %s", request_id_var.get(""), message)
        return JSONResponse(
            status_code=400,
            content=_error_body(
                "validation_error",
                message,
                {"field": field, "errors": len(errors)} if field else {"errors": len(errors)},
            ),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc.message, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(StoreTimeoutError)
    async def handle_store_timeout(request: Request, exc: StoreTimeoutError):
        logger.error("[%s] Store timeout | Context: %s", request_id_var.get(""), exc.context)
        return JSONResponse(status_code=504, content=_error_body("store_timeout", exc.message))

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        logger.error("[%s] Store unavailable | Context: %s", request_id_var.get(""), exc.context)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else {}
        return JSONResponse(
            status_code=503,
            content=_error_body("store_unavailable", exc.message),
            headers=headers,
        )

    @app.exception_handler(UnknownError)
    async def handle_unknown_error(request: Request, exc: UnknownError):
        logger.error("[%s] Unknown error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body("server_error", exc.message))

    @app.exception_handler(RecuerdosError)
    async def handle_recuerdos_error(request: Request, exc: RecuerdosError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: the stack trace goes to the log, never to the client."""
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
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

def create_app(store: Optional[RecordStore] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: RecordStore to serve. Defaults to the adapter selected by
            STORE_BACKEND; tests pass an InMemoryRecordStore.
    """
    app = FastAPI(
        title="Recuerdos API",
        description=(
            "Personal memories diary: create, browse and search dated entries "
            "with a place, an optional photo URL and optional coordinates."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.store = store or build_store(settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Executed in reverse order of addition: RateLimit runs first
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
    app.include_router(memories.router)
    app.include_router(insights.router)
    app.include_router(health.router)

    return app


# uvicorn entry point: `uvicorn recuerdos.main:app`
app = create_app()
