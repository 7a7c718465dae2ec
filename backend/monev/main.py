"""Monev API: main entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from monev.api.v1 import (
    ai,
    analytics,
    auth,
    bills,
    budgets,
    categories,
    chat,
    cron,
    goals,
    investments,
    telegram,
    transactions,
)
from monev.api.v1 import settings as user_settings
from monev.config import settings
from monev.core.database import async_session_factory, engine
from monev.core.logging import configure_logging
from monev.core.middleware import RequestLoggingMiddleware

configure_logging(settings.log_format, settings.log_level)
logger = structlog.get_logger()

VERSION = "0.1.0"

ROUTERS = [
    ("auth", auth.router),
    ("transactions", transactions.router),
    ("categories", categories.router),
    ("budgets", budgets.router),
    ("goals", goals.router),
    ("bills", bills.router),
    ("investments", investments.router),
    ("settings", user_settings.router),
    ("analytics", analytics.router),
    ("ai", ai.router),
    ("chat", chat.router),
    ("telegram", telegram.router),
    ("cron", cron.router),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "startup",
        env=settings.app_env,
        timezone=settings.app_timezone,
        ai_provider=settings.ai_provider,
        telegram=bool(settings.telegram_bot_token),
    )
    yield
    logger.info("shutdown")
    await engine.dispose()


app = FastAPI(
    title="Monev API",
    description="Personal finance tracking with Telegram capture and spending insights",
    version=VERSION,
    lifespan=lifespan,
    # Trailing slash redirects strip Authorization headers behind a proxy
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("database_error", error=str(exc), path=request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Database unavailable"})


@app.get("/health", tags=["system"])
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "version": VERSION}


@app.get("/ready", tags=["system"])
async def readiness_check():
    """Readiness probe: the database must answer a trivial query."""
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("readiness_db_failed", error=str(e))
        return {"status": "degraded", "checks": {"api": "ok", "database": f"error: {e}"}}
    return {"status": "ready", "checks": {"api": "ok", "database": "ok"}}


for name, router in ROUTERS:
    app.include_router(router, prefix=f"/api/v1/{name}", tags=[name])
