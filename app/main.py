"""
Main FastAPI application.

This is the entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from app.core.config import settings
from app.errors import AppError, app_error_handler
from app.routers import applications, health, pipeline

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for the FastAPI app.

    Configures logging on startup; the database engine is created lazily by
    app.db.session on first use.
    """
    configure_logging()
    logger.info("Starting %s", settings.APP_NAME)

    yield

    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description="Hiring pipeline API: applications, stage transitions and stage history",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(AppError, app_error_handler)

app.include_router(health.router, tags=["Health"])
app.include_router(applications.router)
app.include_router(pipeline.router)


@app.get("/")
async def root():
    """Root endpoint - redirects to the interactive API docs."""
    return RedirectResponse(url="/docs", status_code=303)
