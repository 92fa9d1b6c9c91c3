"""Logfire observability configuration."""

import logfire

from deal_attachments.core.config import settings


def setup_logfire() -> None:
    """Configure Logfire instrumentation.

    Only sends telemetry if LOGFIRE_TOKEN is provided.
    Otherwise, disables sending telemetry to avoid export errors.
    """
    if not settings.LOGFIRE_TOKEN:
        logfire.configure(send_to_logfire=False, service_name=settings.LOGFIRE_SERVICE_NAME)
        return

    logfire.configure(
        token=settings.LOGFIRE_TOKEN,
        service_name=settings.LOGFIRE_SERVICE_NAME,
        environment=settings.LOGFIRE_ENVIRONMENT,
        send_to_logfire=True,
    )


def instrument_app(app):
    """Instrument FastAPI app with Logfire."""
    logfire.instrument_fastapi(app)


def instrument_sqlalchemy(engine):
    """Instrument the async SQLAlchemy engine with Logfire."""
    logfire.instrument_sqlalchemy(engine=engine.sync_engine)
