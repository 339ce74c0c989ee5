"""FastAPI application — entry point, middleware, exception handlers, routes.

Creates the FocusGuard API with:
- JSON routes under /api (status, check-in, violation, interventions, health)
- Realtime WebSocket at /ws
- CORS middleware (origins from settings)
- Request logging middleware (raw ASGI — no response body buffering)
- Exception handlers mapping domain errors to HTTP statuses

Run with: uvicorn focusguard.main:app --port 5000

Tier 3 orchestration module: imports from config (Tier 2), deps (Tier 2),
realtime (Tier 2), schemas (Tier 1), errors (Tier 1).
"""

from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from focusguard.config import get_settings
from focusguard.errors import FocusGuardError, NotFoundError, StorageError
from focusguard.schemas import ApiError, utcnow

logger = logging.getLogger("focusguard")


# ---------------------------------------------------------------------------
# Request logging middleware (raw ASGI, websocket-safe)
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware:
    """Logs method, path, status code, and duration for every HTTP request.

    Uses raw ASGI so responses are never buffered. Does NOT log request or
    response bodies, query params, or client IPs.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Wraps the ASGI call to measure timing and capture status code."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "?")
        path = scope.get("path", "?")
        start = time.monotonic()
        status_code = 0

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            await send(message)

        try:
            await self.app(scope, receive, logging_send)
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            logger.info(
                "%s %s %d %.1fms", method, path, status_code, duration_ms
            )


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiError(error=message, code=code).model_dump(),
    )


def _http_exception_response(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wraps HTTPException in the error body.

    If the detail is already an ApiError dict (from deps.py), returns it
    directly. Otherwise wraps it in a generic error.
    """
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return _error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))


def _validation_error_response(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or malformed fields → 400 with a human-readable summary."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = " -> ".join(str(part) for part in first.get("loc", []))
        msg = first.get("msg", "Validation error")
        detail = f"{loc}: {msg}" if loc else msg
    else:
        detail = "Missing required fields"

    return _error_response(400, "VALIDATION_ERROR", detail)


def _not_found_response(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(404, exc.code, exc.message)


def _storage_error_response(request: Request, exc: StorageError) -> JSONResponse:
    """Storage failures → 500. The store already logged the cause."""
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(500, exc.code, "Database error")


def _domain_error_response(request: Request, exc: FocusGuardError) -> JSONResponse:
    logger.error("Unhandled domain error on %s %s: %s", request.method, request.url.path, exc)
    return _error_response(500, exc.code, "Something went wrong!")


def _unhandled_exception_response(request: Request, exc: Exception) -> JSONResponse:
    """Catches all unhandled exceptions — never leaks internals to the client.

    Logs the full traceback server-side. Returns a generic 500 response.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "INTERNAL_ERROR", "Something went wrong!")


# ---------------------------------------------------------------------------
# App creation
# ---------------------------------------------------------------------------


def _init_services() -> None:
    """Builds the store, notifier, and the one broadcaster; wires them into deps.

    Uses local imports to avoid circular imports during module loading.
    A store that cannot be initialized stops startup — the API is useless
    without it.
    """
    from focusguard.api import deps
    from focusguard.realtime import Broadcaster

    settings = get_settings()

    deps._store = deps.create_store(settings)
    deps._notifier = deps.create_notifier(settings)
    deps._broadcaster = Broadcaster()

    if not settings.webhook_url:
        logger.warning(
            "N8N_WEBHOOK_URL is not set. Mentor notifications will be skipped."
        )


def create_app() -> FastAPI:
    """Creates and configures the FastAPI application."""
    settings = get_settings()

    # Configure logging level
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    application = FastAPI(
        title="FocusGuard",
        description="Focus session tracking and mentor intervention engine",
        version="0.1.0",
    )

    # -- Middleware (order matters: last added = first executed) --

    allow_all = "*" in settings.cors_origins
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_middleware(RequestLoggingMiddleware)

    # -- Exception handlers --
    application.add_exception_handler(StarletteHTTPException, _http_exception_response)
    application.add_exception_handler(RequestValidationError, _validation_error_response)
    application.add_exception_handler(NotFoundError, _not_found_response)
    application.add_exception_handler(StorageError, _storage_error_response)
    application.add_exception_handler(FocusGuardError, _domain_error_response)
    application.add_exception_handler(Exception, _unhandled_exception_response)

    # -- Routers --
    _register_routes(application)

    # -- Services --
    _init_services()

    return application


def _register_routes(application: FastAPI) -> None:
    """Registers all API routers on the application."""
    from fastapi import APIRouter

    api = APIRouter(prefix="/api")

    @api.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "Server is running", "timestamp": utcnow().isoformat()}

    from focusguard.api.student import router as student_router

    api.include_router(student_router, tags=["student"])

    application.include_router(api)

    from focusguard.api.realtime import router as realtime_router

    application.include_router(realtime_router, tags=["realtime"])


app = create_app()
