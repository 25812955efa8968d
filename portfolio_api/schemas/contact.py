"""Contact form payload and its field rules."""

from __future__ import annotations

from typing import Mapping

from pydantic import BaseModel, EmailStr, Field

from portfolio_api.core.config import ValidationSettings
from portfolio_api.utils.sanitizer import FieldKind, FieldRule


class ContactSubmission(BaseModel):
    """A contact form submission after sanitization."""

    name: str = Field(..., description="Visitor name")
    email: EmailStr = Field(..., description="Visitor email address, lower-cased")
    subject: str = Field(..., description="Message subject")
    message: str = Field(..., description="Message body")
    phone: str | None = Field(None, description="Optional phone number")

    @classmethod
    def from_fields(cls, fields: Mapping[str, str]) -> "ContactSubmission":
        return cls(
            name=fields["name"],
            email=fields["email"],
            subject=fields["subject"],
            message=fields["message"],
            phone=fields.get("phone"),
        )


def contact_field_rules(cfg: ValidationSettings) -> tuple[FieldRule, ...]:
    """Rules in the order errors are reported to the form."""

    return (
        FieldRule(name="name", min_length=cfg.name_min, max_length=cfg.name_max),
        FieldRule(name="email", max_length=cfg.email_max, kind=FieldKind.EMAIL),
        FieldRule(name="subject", min_length=cfg.subject_min, max_length=cfg.subject_max),
        FieldRule(
            name="message",
            min_length=cfg.contact_message_min,
            max_length=cfg.contact_message_max,
        ),
        FieldRule(
            name="phone",
            max_length=cfg.phone_max,
            kind=FieldKind.PHONE,
            required=False,
        ),
    )
