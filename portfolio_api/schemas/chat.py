"""Request rules for the chatbot endpoint."""

from __future__ import annotations

from portfolio_api.core.config import ValidationSettings
from portfolio_api.utils.sanitizer import FieldRule


def chat_field_rules(cfg: ValidationSettings) -> tuple[FieldRule, ...]:
    return (
        FieldRule(
            name="message",
            min_length=cfg.chat_message_min,
            max_length=cfg.chat_message_max,
        ),
    )
