"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deal_attachments.api.deps import get_deal_directory
from deal_attachments.api.exception_handlers import register_exception_handlers
from deal_attachments.api.routes.v1 import v1_router
from deal_attachments.core.config import settings
from deal_attachments.core.logfire_setup import instrument_app, instrument_sqlalchemy, setup_logfire
from deal_attachments.db.session import engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Release the deal API client and database pool on shutdown."""
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})")
    yield
    await get_deal_directory().close()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logfire()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    register_exception_handlers(app)
    app.include_router(v1_router, prefix=settings.API_V1_STR)

    instrument_app(app)
    instrument_sqlalchemy(engine)
    return app


app = create_app()
