"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production injects via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    development_mode: bool = Field(
        False,
        description="Bypass origin checks and include technical error details",
    )
    allowed_origins: str = Field(
        "https://portfolio.example.com",
        description="Comma-separated list of exact scheme+host origins allowed to call the API",
    )
    chatbot_enabled: bool = Field(
        True,
        description="Mount the chatbot endpoint",
    )
    messaging_enabled: bool = Field(
        True,
        description="Mount the contact form endpoint",
    )
    chat_timeout_seconds: float = Field(
        25.0,
        description="Upper bound for generating a chatbot reply",
        gt=0,
    )
    contact_timeout_seconds: float = Field(
        30.0,
        description="Upper bound for processing a contact submission",
        gt=0,
    )
    owner_name: str = Field(
        "Portfolio Owner",
        description="Name used in the persona prompt and outgoing emails",
    )
    site_url: str = Field(
        "https://portfolio.example.com",
        description="Public portfolio URL linked from the auto-reply",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Per-class rate limit table and store maintenance."""

    enabled: bool = Field(True, description="Enable per-IP rate limiting")
    chatbot_requests: int = Field(10, ge=1)
    chatbot_window_seconds: int = Field(15 * 60, ge=1)
    chatbot_message: str = Field(
        "Too many chatbot requests. Please wait before asking another question.",
    )
    contact_requests: int = Field(3, ge=1)
    contact_window_seconds: int = Field(60 * 60, ge=1)
    contact_message: str = Field(
        "Contact form rate limit exceeded. Please wait before submitting again.",
    )
    global_requests: int = Field(30, ge=1)
    global_window_seconds: int = Field(60, ge=1)
    global_message: str = Field("Too many requests. Please slow down.")
    sweep_interval_seconds: float = Field(
        60 * 60,
        description="How often stale rate limit records are evicted",
        gt=0,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class ValidationSettings(BaseSettings):
    """Field length bounds for user supplied text."""

    chat_message_min: int = Field(1, ge=0)
    chat_message_max: int = Field(1000, ge=1)
    name_min: int = Field(2, ge=0)
    name_max: int = Field(50, ge=1)
    email_max: int = Field(100, ge=1)
    subject_min: int = Field(5, ge=0)
    subject_max: int = Field(100, ge=1)
    contact_message_min: int = Field(10, ge=0)
    contact_message_max: int = Field(2000, ge=1)
    phone_max: int = Field(30, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="VALIDATION_",
        case_sensitive=False,
    )


class LLMSettings(BaseSettings):
    """Generative-AI provider configuration.

    Any OpenAI-compatible endpoint works through ``base_url`` (Gemini exposes
    one as well).
    """

    provider: str = Field("openai", description="LLM provider name")
    model: str = Field("gpt-4o-mini", description="Model name")
    api_key: str | None = Field(
        None,
        description="API key for the provider (server side only)",
    )
    base_url: str | None = Field(
        None,
        description="Custom OpenAI-compatible API endpoint",
    )
    timeout_seconds: float = Field(25.0, description="Request timeout in seconds")
    temperature: float = Field(0.7, ge=0, le=2)
    max_output_tokens: int = Field(200, ge=1)
    persona_url: str | None = Field(
        None,
        description="URL of a plain-text professional profile used in the persona prompt",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class EmailSettings(BaseSettings):
    """SMTP transport configuration."""

    host: str = Field("smtp.gmail.com")
    port: int = Field(587)
    username: str | None = Field(None, description="SMTP login, also the sender address")
    password: str | None = Field(None)
    use_starttls: bool = Field(True)
    timeout_seconds: float = Field(15.0, gt=0)
    owner_address: str | None = Field(
        None,
        description="Where contact notifications go (defaults to the SMTP username)",
    )

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO")
    format: str = Field("json", description="json or plain")
    output: str = Field("stdout", description="stdout or file")
    file_path: str | None = Field(None)
    max_bytes: int = Field(10 * 1024 * 1024)
    backup_count: int = Field(5)
    request_id_header: str = Field("X-Request-ID")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
