from __future__ import annotations

from portfolio_api.api.routes.chat import router as chat_router
from portfolio_api.api.routes.contact import router as contact_router
from portfolio_api.api.routes.health import router as health_router
from portfolio_api.api.routes.site_config import router as config_router

__all__ = ["chat_router", "contact_router", "config_router", "health_router"]
