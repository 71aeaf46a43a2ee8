"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config.settings import settings
from src.container import build_container
from src.pm_admin.api.router import router as admin_router
from src.pm_chat.api.router import router as telegram_router
from src.pm_common.errors import AppError, StoreUnavailableError
from src.pm_common.response import error_response
from src.pm_gateway.middleware.request_log import RequestLogMiddleware
from src.pm_market.api.cron_router import router as cron_router
from src.pm_market.api.router import router as market_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: build services, verify DB + Redis connections. Shutdown: dispose."""
    # Startup
    container = build_container(settings)
    async with container.engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await container.redis.ping()
    app.state.container = container
    logger.info("%s started (underlying=%s)", settings.APP_NAME, settings.UNDERLYING)
    yield
    # Shutdown
    await container.aclose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Unhandled store error on %s", request.url.path, exc_info=exc)
    return await app_error_handler(request, StoreUnavailableError())


app.include_router(market_router, prefix="/api/v1")
app.include_router(cron_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(telegram_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
