"""
Signature Relay — FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn signature_relay.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────────┐ ┌──────────┐ ┌──────────────────┐      │
    │  │ CORS headers │→│ Req ID   │→│  Logging         │      │
    │  └──────────────┘ └──────────┘ └──────────────────┘      │
    │                                                          │
    │  Routes:                                                 │
    │  ┌──────────────────────────────┐ ┌─────────────┐        │
    │  │ POST/OPTIONS /api/signature- │ │ GET /health │        │
    │  │ upload                       │ └─────────────┘        │
    │  └──────────────────────────────┘                        │
    │                                                          │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ InvalidInput→400 │ Upstream→echo │ others→500      │  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from signature_relay import __version__
from signature_relay.config import settings
from signature_relay.exceptions import InvalidInputError, RelayError, UnexpectedError
from signature_relay.middleware.cors import CORS_HEADERS, CORSHeadersMiddleware
from signature_relay.middleware.logging import RequestLoggingMiddleware
from signature_relay.middleware.request_id import RequestIDMiddleware, request_id_var
from signature_relay.routes import health, signature
from signature_relay.schemas.signature import ErrorResponse

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    When:    Called once during app startup (before ANY other initialization).
    Format:  %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    log_format = (
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,  # Override any existing logging config
    )

    # Third-party libraries log every connection at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging, report missing configuration.
    Shutdown: log only; nothing is pooled or persisted.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("Signature Relay starting up...")

    # A missing key is reported but does not stop the server: /health still
    # answers and uploads fail with a ConfigurationError body
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("ServiceM8 base URL: %s", settings.servicem8_base_url)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Signature Relay shutting down...")
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int,
    message: str,
    kind: str,
    details=None,
    headers=None,
    request_id=None,
) -> JSONResponse:
    """Render the ErrorResponse body shared by every failure path."""
    body = ErrorResponse(
        error=message,
        kind=kind,
        details=details,
        request_id=request_id or request_id_var.get("") or None,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
        headers=headers,
    )


def _validation_message(exc: RequestValidationError) -> str:
    """Pick a field-specific message from FastAPI's body validation errors."""
    fields = {str(part) for err in exc.errors() for part in err.get("loc", ())}
    if "jobUUID" in fields:
        return "Invalid 'jobUUID' in request body."
    if "signature" in fields:
        return "Invalid or missing 'signature' in base64 format."
    return "Request body must be a JSON object with 'jobUUID' and 'signature'."


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        RelayError              → exc.status_code (400 / upstream / 500)
        RequestValidationError  → 400 InvalidInput (malformed or non-object body)
        StarletteHTTPException  → its own status (404, 405)
        Exception (fallback)    → 500 UnexpectedError

    Upstream failures surface ServiceM8's response text in `details`.
    Stack traces are only ever logged.
    """

    @app.exception_handler(RelayError)
    async def handle_relay_error(request: Request, exc: RelayError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, exc.kind, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, exc.kind, exc.message)
        return error_response(exc.status_code, exc.message, exc.kind, exc.details)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Malformed JSON or wrongly typed fields are client input errors."""
        rid = request_id_var.get("")
        message = _validation_message(exc)
        logger.warning("[%s] Request validation failed: %s", rid, message)
        return error_response(
            400,
            message,
            InvalidInputError.kind,
            {"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            message, kind = "Method not allowed. Use POST.", "MethodNotAllowed"
        elif exc.status_code == 404:
            message, kind = "Not found.", "NotFound"
        else:
            message, kind = str(exc.detail), "HTTPError"
        return error_response(exc.status_code, message, kind, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for truly unexpected errors.

        This handler runs in ServerErrorMiddleware, outside the user
        middleware stack: the ContextVar set there is not visible, and no
        middleware adds headers to this response. The request ID is read
        from request.state and the CORS and X-Request-ID headers are
        attached here.
        """
        rid = request_id_var.get("") or getattr(request.state, "request_id", "")
        headers = dict(CORS_HEADERS)
        if rid:
            headers["X-Request-ID"] = rid

        logger.error(
            "[%s] Unexpected error: %s",
            rid,
            str(exc),
            exc_info=True,
        )
        return error_response(
            500,
            f"Internal server error: {exc}",
            UnexpectedError.kind,
            headers=headers,
            request_id=rid or None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Signature Relay API",
        description=(
            "Relays customer signatures captured in the browser to ServiceM8 "
            "as PNG attachments on the matching job."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # CORS headers → RequestID → Logging → route

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(CORSHeadersMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(signature.router)
    app.include_router(health.router)

    return app


# uvicorn expects `signature_relay.main:app` to be importable
app = create_app()
