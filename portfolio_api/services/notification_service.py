"""Contact form emails: rendering and concurrent dispatch.

Two independent emails go out per submission: a notification to the site
owner and an auto-reply to the visitor. They are sent concurrently; one
failing is a reportable partial success, both failing is an ``EmailAppError``.
"""

from __future__ import annotations

import asyncio
import html
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Awaitable

from portfolio_api.adapters.email.base import AbstractEmailSender
from portfolio_api.core.errors import EmailAppError
from portfolio_api.schemas.contact import ContactSubmission
from portfolio_api.services.chat_service import ChatResponder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchReport:
    notification_sent: bool
    auto_reply_sent: bool

    @property
    def complete(self) -> bool:
        return self.notification_sent and self.auto_reply_sent


def _paragraphs(text: str) -> str:
    return html.escape(text).replace("\n", "<br>")


def render_owner_notification(
    contact: ContactSubmission,
    *,
    sender: str,
    recipient: str,
) -> EmailMessage:
    """Notification for the owner; Reply-To points at the visitor."""

    msg = EmailMessage()
    msg["Subject"] = f"Portfolio Contact: {contact.subject}"
    msg["From"] = sender
    msg["To"] = recipient
    msg["Reply-To"] = contact.email

    text_lines = [
        "New contact form submission",
        "",
        f"Name:    {contact.name}",
        f"Email:   {contact.email}",
        f"Phone:   {contact.phone or '-'}",
        f"Subject: {contact.subject}",
        "-" * 40,
        contact.message,
    ]
    msg.set_content("\n".join(text_lines))

    phone_row = (
        f"<p><strong>Phone:</strong> {html.escape(contact.phone)}</p>" if contact.phone else ""
    )
    msg.add_alternative(
        "<div style=\"font-family: sans-serif; max-width: 600px;\">"
        "<h2>New contact form submission</h2>"
        f"<p><strong>Name:</strong> {html.escape(contact.name)}</p>"
        f"<p><strong>Email:</strong> {html.escape(contact.email)}</p>"
        f"{phone_row}"
        f"<p><strong>Subject:</strong> {html.escape(contact.subject)}</p>"
        f"<blockquote>{_paragraphs(contact.message)}</blockquote>"
        "</div>",
        subtype="html",
    )
    return msg


def render_auto_reply(
    contact: ContactSubmission,
    reply_text: str,
    *,
    sender: str,
    owner_name: str,
    site_url: str,
) -> EmailMessage:
    """Acknowledgement for the visitor carrying the generated reply."""

    msg = EmailMessage()
    msg["Subject"] = f"Thank you for contacting me! - {owner_name}"
    msg["From"] = sender
    msg["To"] = contact.email
    msg["Reply-To"] = sender

    text_lines = [
        f"Hi {contact.name},",
        "",
        "Thank you for reaching out through my portfolio website. "
        "I've received your message and will get back to you personally within 24-48 hours.",
        "",
        reply_text,
        "",
        f"{owner_name}",
        site_url,
    ]
    msg.set_content("\n".join(text_lines))

    msg.add_alternative(
        "<div style=\"font-family: sans-serif; max-width: 600px;\">"
        f"<h2>Hi {html.escape(contact.name)}!</h2>"
        "<p>Thank you for reaching out through my portfolio website. "
        "I've received your message and will get back to you personally within 24-48 hours.</p>"
        f"<p>{_paragraphs(reply_text)}</p>"
        f"<p>{html.escape(owner_name)}<br>"
        f"<a href=\"{html.escape(site_url, quote=True)}\">{html.escape(site_url)}</a></p>"
        "</div>",
        subtype="html",
    )
    return msg


class ContactService:
    """Send both contact emails for a submission.

    Args:
        sender: Email transport.
        responder: Source of the auto-reply text.
        owner_address: Notification recipient; defaults to the sender address.
        owner_name: Signature used in the auto-reply.
        site_url: Portfolio link used in the auto-reply.
        timeout_seconds: Bound for each of the two emails.
    """

    def __init__(
        self,
        sender: AbstractEmailSender,
        responder: ChatResponder,
        *,
        owner_address: str | None,
        owner_name: str,
        site_url: str,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.sender = sender
        self.responder = responder
        self.owner_address = owner_address
        self.owner_name = owner_name
        self.site_url = site_url
        self.timeout_seconds = timeout_seconds

    async def _send_notification(self, contact: ContactSubmission) -> None:
        message = render_owner_notification(
            contact,
            sender=self.sender.sender_address,
            recipient=self.owner_address or self.sender.sender_address,
        )
        await self.sender.send(message)

    async def _send_auto_reply(self, contact: ContactSubmission) -> None:
        reply_text = await self.responder.auto_reply_text(contact)
        message = render_auto_reply(
            contact,
            reply_text,
            sender=self.sender.sender_address,
            owner_name=self.owner_name,
            site_url=self.site_url,
        )
        await self.sender.send(message)

    async def _bounded(self, leg: str, send: Awaitable[None]) -> None:
        try:
            await asyncio.wait_for(send, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise RuntimeError(f"{leg} did not finish within {self.timeout_seconds}s") from exc

    async def submit(self, contact: ContactSubmission) -> DispatchReport:
        """Deliver both emails, each within ``timeout_seconds``.

        A leg that fails or times out only marks that email as not sent.

        Raises:
            EmailAppError: When neither email could be delivered.
        """

        notification, auto_reply = await asyncio.gather(
            self._bounded("owner notification", self._send_notification(contact)),
            self._bounded("auto-reply", self._send_auto_reply(contact)),
            return_exceptions=True,
        )
        for outcome in (notification, auto_reply):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome

        if isinstance(notification, Exception) and isinstance(auto_reply, Exception):
            raise EmailAppError(
                code="email_delivery_failed",
                message="Neither contact email could be delivered",
                details={
                    "upstream": "smtp",
                    "context": {
                        "notification_error": str(notification),
                        "auto_reply_error": str(auto_reply),
                    },
                },
            ) from notification

        report = DispatchReport(
            notification_sent=not isinstance(notification, Exception),
            auto_reply_sent=not isinstance(auto_reply, Exception),
        )
        if report.complete:
            logger.info("contact.dispatched", extra={"notification_sent": True, "auto_reply_sent": True})
        else:
            failed = notification if isinstance(notification, Exception) else auto_reply
            logger.warning(
                "contact.dispatched",
                extra={
                    "notification_sent": report.notification_sent,
                    "auto_reply_sent": report.auto_reply_sent,
                    "error_type": type(failed).__name__,
                    "error_msg": str(failed),
                },
            )
        return report

