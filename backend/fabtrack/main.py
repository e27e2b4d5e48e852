"""
Fabtrack Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes configuration, middleware, route mounting, exception
       handling and the store lifecycle in one place.
How:   create_app() returns a configured FastAPI instance; `app` is the
       module-level instance uvicorn serves (uvicorn fabtrack.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌──────────┐ ┌────────┐ ┌──────────┐  │
    │  │  Req ID  │→│ Logging  │→│  GZip  │→│   CORS   │  │
    │  └──────────┘ └──────────┘ └────────┘ └──────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────────────┐ ┌──────────────────┐  │
    │  │ /api/v1 forms (7 routes) │ │ GET /health      │  │
    │  └──────────────────────────┘ └──────────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Validation→400 │ NotFound→404 │ Internal→500 │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, connect the Database on app.state
              (fails fast on a missing or unreachable DATABASE_URL)
    Shutdown: dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from fabtrack import __version__
from fabtrack.config import settings
from fabtrack.database import Database
from fabtrack.exceptions import (
    FabtrackError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from fabtrack.middleware.logging import RequestLoggingMiddleware
from fabtrack.middleware.request_id import RequestIDMiddleware, request_id_var
from fabtrack.routes import forms, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Handler: stdout (captured by the container runtime).
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # fabtrack.access already logs every request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Connect the store on startup and release it on shutdown.

    `Database.connect` is idempotent, so an app whose database was already
    connected by its creator (the test-suite does this) starts the same way.
    A missing DATABASE_URL (ConfigurationError) or an unreachable database
    (DatabaseConnectionError) aborts startup.
    """
    setup_logging()
    logger.info("Fabtrack Backend %s starting up...", __version__)

    database: Database = app.state.database
    await database.connect(settings.database_url)

    logger.info("Frontend URL for QR codes: %s", settings.frontend_url)
    logger.info("Server ready on %s:%d", settings.backend_host, settings.port)

    yield

    logger.info("Fabtrack Backend shutting down...")
    await database.disconnect()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError         → 400 {message, missingFields | error}
        RequestValidationError  → 400 {message, error} (body is not valid JSON)
        NotFoundError           → 404 {message}
        InternalError           → 500 {message, error}
        FabtrackError (base)    → 500 {message, error}
        Exception (fallback)    → 500 {message, error}, traceback logged
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(status_code=400, content=exc.to_body())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = "; ".join(str(error.get("msg")) for error in exc.errors())
        logger.warning("[%s] Malformed request: %s", rid, errors)
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request body", "error": errors},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"message": exc.message})

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        rid = request_id_var.get("")
        logger.error("[%s] %s: %s | Context: %s", rid, exc.message, exc.error, exc.context)
        return JSONResponse(
            status_code=500,
            content={"message": exc.message, "error": exc.error},
        )

    @app.exception_handler(FabtrackError)
    async def handle_app_error(request: Request, exc: FabtrackError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "error": exc.message},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "error": str(exc) or type(exc).__name__},
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        database: Store resource to serve from. Defaults to a new,
                  unconnected Database that the lifespan connects.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Fabtrack API",
        description=(
            "Textile production forms with warp/weft details and a QR code "
            "linking each form to its detail page."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Process-scoped store handed to requests through get_db_session
    app.state.database = database or Database()

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(forms.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn on the configured port."""
    uvicorn.run(
        "fabtrack.main:app",
        host=settings.backend_host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
