from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build apps with different feature toggles.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from portfolio_api.api.routes import chat_router, config_router, contact_router, health_router
from portfolio_api.core.config import settings
from portfolio_api.core.exception_handlers import setup_exception_handlers
from portfolio_api.core.logging import configure_logging
from portfolio_api.core.middleware import request_id_middleware
from portfolio_api.core.openapi import apply_openapi_customizations
from portfolio_api.core.rate_limit import run_periodic_sweep

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the rate limit sweep for the lifetime of the app."""
    sweep_task = asyncio.create_task(run_periodic_sweep())
    logger.info(
        "app.startup",
        extra={
            "env": settings.app_env,
            "chatbot_enabled": settings.app.chatbot_enabled,
            "messaging_enabled": settings.app.messaging_enabled,
            "development_mode": settings.app.development_mode,
        },
    )
    try:
        yield
    finally:
        sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweep_task
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Portfolio API",
        description=(
            "Backend for a static portfolio site: a chatbot that answers as the "
            "site owner's assistant and a contact form that emails the owner and "
            "auto-replies to the visitor. Both endpoints are rate limited per IP, "
            "origin checked and input validated."
        ),
        version="0.1.0",
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers; POST endpoints only exist while their feature is enabled
    if settings.app.chatbot_enabled:
        app.include_router(chat_router)
    if settings.app.messaging_enabled:
        app.include_router(contact_router)
    app.include_router(config_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
