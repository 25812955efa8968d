"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests. It
pins the environment before ``portfolio_api.core.config`` builds the global
settings object, so no developer .env file leaks into the suite.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_DEVELOPMENT_MODE", "false")
os.environ.setdefault("APP_ALLOWED_ORIGINS", "https://portfolio.example.com,https://www.portfolio.example.com")
os.environ.setdefault("APP_OWNER_NAME", "Alex Doe")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("EMAIL_USERNAME", "owner@example.com")
os.environ.setdefault("EMAIL_PASSWORD", "smtp-secret")
os.environ.setdefault("LOG_FORMAT", "json")

import pytest

from portfolio_api.api import dependencies
from portfolio_api.core import rate_limit as rate_limit_module

ALLOWED_ORIGIN = "https://portfolio.example.com"


@pytest.fixture(autouse=True)
def fresh_process_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test its own rate limiter and service instances."""
    monkeypatch.setattr(rate_limit_module, "_limiter", None)
    monkeypatch.setattr(rate_limit_module, "_limiter_config", None)
    monkeypatch.setattr(dependencies, "_chat_responder", None)
    monkeypatch.setattr(dependencies, "_contact_service", None)


@pytest.fixture
def browser_headers() -> dict[str, str]:
    """Headers a browser on the portfolio site sends with a JSON POST."""
    return {"Origin": ALLOWED_ORIGIN, "Content-Type": "application/json"}
