import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from switchboard import __version__
from switchboard.configuration.config import Settings, get_settings
from switchboard.configuration.logging_config import configure_logging
from switchboard.domain.exceptions import MessageProcessorError, error_to_http_status
from switchboard.infrastructure.adapters.primary.web.routers import chat, health, messages
from switchboard.infrastructure.processor import MessageProcessor
from switchboard.infrastructure.telemetry import configure_telemetry, shutdown_telemetry

logger = logging.getLogger(__name__)


def create_app(processor: MessageProcessor, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the HTTP application around a configured processor.

    Args:
        processor: Processor handling every request
        settings: Application settings (defaults to the cached settings)
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.service_name} ({settings.environment})")
        if configure_telemetry(settings):
            logger.info("OpenTelemetry initialized")
        else:
            logger.info("OpenTelemetry disabled")

        yield

        logger.info(f"Shutting down {settings.service_name}")
        if settings.enable_telemetry:
            shutdown_telemetry()

    app = FastAPI(
        title=settings.service_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.state.processor = processor
    app.state.settings = settings

    @app.exception_handler(MessageProcessorError)
    async def message_processor_error_handler(
        request: Request, exc: MessageProcessorError
    ) -> JSONResponse:
        status_code = error_to_http_status(exc)
        if status_code >= 500:
            logger.error(f"[API] {request.url.path} failed: {exc}")
        else:
            logger.info(f"[API] {request.url.path} rejected: {exc}")
        return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})

    app.include_router(health.router)
    app.include_router(messages.router)
    app.include_router(chat.router)

    return app
