"""Response header sets shared by the pipeline and the exception handlers."""

from __future__ import annotations

from starlette.requests import Request

from portfolio_api.core.config import settings
from portfolio_api.core.origin import parse_origins

HARDENING_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

CORS_ALLOW_METHODS = "POST, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, X-Requested-With"
CORS_MAX_AGE = "3600"

# Key on request.state holding headers every response for the request must carry.
STATE_KEY = "response_headers"


def cors_allow_origin(origin: str | None, allowed_origins: tuple[str, ...]) -> str:
    """Echo an allow-listed origin, otherwise answer with the primary site."""
    if origin and origin in allowed_origins:
        return origin
    return allowed_origins[0] if allowed_origins else "null"


def build_security_headers(origin: str | None) -> dict[str, str]:
    headers = dict(HARDENING_HEADERS)
    headers["Access-Control-Allow-Origin"] = cors_allow_origin(
        origin, parse_origins(settings.app.allowed_origins)
    )
    headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
    headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
    headers["Access-Control-Max-Age"] = CORS_MAX_AGE
    headers["Vary"] = "Origin"
    return headers


def response_headers_for(request: Request) -> dict[str, str]:
    """Headers collected for this request so far, or a fresh security set."""
    collected = getattr(request.state, STATE_KEY, None)
    if collected is not None:
        return dict(collected)
    return build_security_headers(request.headers.get("origin"))
