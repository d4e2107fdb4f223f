"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown.
  3. The /api router is registered.
  4. Global exception handlers turn every error into
     {"success": false, "error": "..."}.

Run with:
    uvicorn main:app --reload              # development
    uvicorn main:app --workers 4           # production (no --reload)
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wadesk.api.router import api
from wadesk.core.config import settings
from wadesk.core.logging import configure_logging, get_logger
from wadesk.db.session import AsyncSessionLocal, engine
from wadesk.schemas.common import ErrorResponse
from wadesk.services.user_service import UserService
from wadesk.services.waha_client import WahaError, waha_client

logger = get_logger(__name__)


async def purge_reset_tokens_forever(interval: int) -> None:
    """Clear expired password reset tokens every `interval` seconds."""
    while True:
        await asyncio.sleep(interval)
        try:
            async with AsyncSessionLocal() as db:
                cleared = await UserService.clear_expired_reset_tokens(db)
                await db.commit()
            if cleared:
                logger.info("Expired reset tokens cleared", count=cleared)
        except Exception as exc:
            logger.error("Reset token cleanup failed", error=str(exc), exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup / shutdown lifecycle hook.

    Startup:
      - Configure structured logging
      - Start the reset token cleanup task

    Shutdown:
      - Stop the cleanup task
      - Close the gateway client's connection pool
      - Dispose the async engine (graceful connection pool drain)
    """
    configure_logging()
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
        waha_url=settings.WAHA_URL,
    )
    cleanup = asyncio.create_task(
        purge_reset_tokens_forever(settings.RESET_TOKEN_CLEANUP_INTERVAL_SECONDS)
    )
    yield
    logger.info("Shutting down")
    cleanup.cancel()
    with suppress(asyncio.CancelledError):
        await cleanup
    await waha_client.close()
    await engine.dispose()


def _error(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Role-based WhatsApp desk: admins route gateway chats to "
            "developers, who answer them from a restricted inbox."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(api)

    # ── Global Exception Handlers ─────────────────────────────────────────────

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{field}: {first.get('msg')}" if field else first.get("msg")
        else:
            message = "Invalid request"
        return _error(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(WahaError)
    async def gateway_exception_handler(request: Request, exc: WahaError) -> JSONResponse:
        logger.error(
            "Gateway call failed",
            path=request.url.path,
            method=request.method,
            upstream_status=exc.status_code,
            error=str(exc),
        )
        return _error(status.HTTP_502_BAD_GATEWAY, f"WhatsApp gateway error: {exc}")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
