from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from portfolio_api.api.routes.chat import CHATBOT_PATH
from portfolio_api.api.routes.contact import CONTACT_PATH
from portfolio_api.core.config import settings
from portfolio_api.core.headers import HARDENING_HEADERS
from portfolio_api.schemas.envelope import FrontendConfig

router = APIRouter(tags=["Config"])


@router.get("/api/config")
def frontend_config() -> JSONResponse:
    """Feature flags and endpoint paths for the static frontend.

    Disabled features report no endpoint so the page can hide the widget.
    """

    endpoints: dict[str, str] = {}
    if settings.app.chatbot_enabled:
        endpoints["chatbot"] = CHATBOT_PATH
    if settings.app.messaging_enabled:
        endpoints["contact"] = CONTACT_PATH

    config = FrontendConfig(
        chatbot_enabled=settings.app.chatbot_enabled,
        messaging_enabled=settings.app.messaging_enabled,
        api_endpoints=endpoints,
    )
    return JSONResponse(content=config.to_wire(), headers=dict(HARDENING_HEADERS))
