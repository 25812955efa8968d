"""Email transport adapters."""

from portfolio_api.adapters.email.base import AbstractEmailSender
from portfolio_api.adapters.email.smtp_client import SMTPEmailSender, create_email_sender

__all__ = [
    "AbstractEmailSender",
    "SMTPEmailSender",
    "create_email_sender",
]
