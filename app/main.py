from app.core.config import get_settings
from app.core.logging import configure_logging
from app.core.middleware import RequestIdMiddleware
from app.api.v1.router import v1_router

from fastapi import FastAPI
import logging

log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )
    # Middleware: Request ID (+ access log line)
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    log.info(
        "app created",
        extra={"environment": settings.environment, "payment_provider": settings.payment_provider},
    )
    return app


app = create_app()
