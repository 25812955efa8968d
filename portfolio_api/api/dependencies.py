"""Process-wide service instances used by the route handlers.

Built on first use so importing the app never needs provider credentials;
tests replace the module globals.
"""

from __future__ import annotations

from portfolio_api.adapters.email.smtp_client import create_email_sender
from portfolio_api.adapters.llm.factory import create_llm_client
from portfolio_api.core.config import settings
from portfolio_api.services.chat_service import ChatResponder
from portfolio_api.services.notification_service import ContactService
from portfolio_api.services.persona import get_persona_loader

_chat_responder: ChatResponder | None = None
_contact_service: ContactService | None = None


def get_chat_responder() -> ChatResponder:
    global _chat_responder
    if _chat_responder is None:
        _chat_responder = ChatResponder(
            llm=create_llm_client(),
            persona=get_persona_loader(),
            owner_name=settings.app.owner_name,
            timeout_seconds=settings.app.chat_timeout_seconds,
        )
    return _chat_responder


def get_contact_service() -> ContactService:
    global _contact_service
    if _contact_service is None:
        _contact_service = ContactService(
            sender=create_email_sender(),
            responder=get_chat_responder(),
            owner_address=settings.email.owner_address,
            owner_name=settings.app.owner_name,
            site_url=settings.app.site_url,
            timeout_seconds=settings.app.contact_timeout_seconds,
        )
    return _contact_service
