"""SMTP email sender.

``smtplib`` is blocking, so each delivery runs in a worker thread and is
bounded by ``asyncio.wait_for``. A delivery that times out may still complete
in its thread; sending is never rolled back.
"""

from __future__ import annotations

import asyncio
import smtplib
import ssl
from email.message import EmailMessage

from portfolio_api.adapters.email.base import AbstractEmailSender
from portfolio_api.core.config import EmailSettings, settings
from portfolio_api.core.errors import SystemAppError

# Implicit TLS port; every other port uses plain SMTP, optionally upgraded.
SMTPS_PORT = 465


class SMTPEmailSender(AbstractEmailSender):
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        *,
        use_starttls: bool = True,
        timeout_seconds: float = 15.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self._password = password
        self.use_starttls = use_starttls
        self.timeout_seconds = timeout_seconds

    @property
    def sender_address(self) -> str:
        return self.username

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.port == SMTPS_PORT:
            return smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout_seconds)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds)
        if self.use_starttls:
            server.starttls(context=context)
        return server

    def _send_blocking(self, message: EmailMessage) -> None:
        with self._connect() as server:
            server.login(self.username, self._password)
            server.send_message(message)

    async def send(self, message: EmailMessage) -> None:
        """Send ``message`` through the configured SMTP server.

        Raises:
            RuntimeError: On SMTP, socket or timeout failures. The original
                exception is chained as ``__cause__``.
        """
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._send_blocking, message),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise RuntimeError(
                f"SMTP delivery to {self.host}:{self.port} timed out after {self.timeout_seconds}s"
            ) from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise RuntimeError(f"SMTP delivery to {self.host}:{self.port} failed: {exc}") from exc


def create_email_sender(cfg: EmailSettings | None = None) -> AbstractEmailSender:
    """Build the SMTP sender from settings.

    Raises:
        SystemAppError: If credentials are not configured.
    """
    cfg = cfg or settings.email
    if not cfg.username or not cfg.password:
        raise SystemAppError(
            code="email_not_configured",
            message="EMAIL_USERNAME and EMAIL_PASSWORD must be set to send email",
        )
    return SMTPEmailSender(
        host=cfg.host,
        port=cfg.port,
        username=cfg.username,
        password=cfg.password,
        use_starttls=cfg.use_starttls,
        timeout_seconds=cfg.timeout_seconds,
    )
