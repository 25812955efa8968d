"""Pydantic schemas for the JSON response envelopes.

Field names are snake_case in Python and camelCase on the wire, which is what
the static frontend reads.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class SuccessEnvelope(_CamelModel):
    """Body of every 2xx response from a POST endpoint."""

    success: bool = True
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_timestamp)


class FieldErrorBody(_CamelModel):
    field: str
    kind: str
    message: str


class TechnicalDetails(_CamelModel):
    """Only populated in development mode."""

    code: str | None = None
    original_message: str | None = None
    error_type: str | None = None
    details: dict[str, Any] | None = None
    stack: str | None = None


class ErrorBody(_CamelModel):
    message: str
    category: str
    timestamp: str = Field(default_factory=utc_timestamp)
    request_id: str | None = None
    fields: list[FieldErrorBody] | None = None
    retry_after_seconds: int | None = None
    technical: TechnicalDetails | None = None


class ErrorEnvelope(_CamelModel):
    """Body of every error response."""

    success: bool = False
    error: ErrorBody


class ChatReplyData(_CamelModel):
    response: str


class ContactReceiptData(_CamelModel):
    sent: bool
    notification_sent: bool
    auto_reply_sent: bool
    message: str


class FrontendConfig(_CamelModel):
    chatbot_enabled: bool
    messaging_enabled: bool
    api_endpoints: dict[str, str]
