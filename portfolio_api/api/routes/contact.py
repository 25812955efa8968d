from __future__ import annotations

from fastapi import APIRouter, Request, Response

from portfolio_api.api import dependencies
from portfolio_api.core.config import settings
from portfolio_api.core.pipeline import RequestPipeline, RequestState
from portfolio_api.core.rate_limit import LimitClass
from portfolio_api.schemas.contact import ContactSubmission, contact_field_rules
from portfolio_api.schemas.envelope import ContactReceiptData

router = APIRouter(tags=["Contact"])

CONTACT_PATH = "/api/sendContactEmail"

SENT_MESSAGE = "Thank you for your message! I'll get back to you soon."
PARTIAL_MESSAGE = (
    "Your message was received, but part of the email delivery failed. "
    "I'll still get back to you soon."
)


@router.api_route(CONTACT_PATH, methods=["POST", "OPTIONS"])
async def send_contact_email(request: Request) -> Response:
    """Deliver a contact form submission by email.

    Body: ``{"name", "email", "subject", "message", "phone"?}``. The owner
    gets a notification and the visitor an auto-reply; both are sent
    concurrently.

    Returns:
        Success envelope whose data reports which of the two emails went out.

    Raises:
        AppError: 400/403/429 from the admission pipeline, 502 when neither
            email could be delivered.
    """

    pipeline = RequestPipeline(LimitClass.CONTACT, contact_field_rules(settings.validation))
    ctx = await pipeline.run(request)
    if ctx.response is not None:
        return ctx.response

    contact = ContactSubmission.from_fields(ctx.fields)
    ctx.advance(RequestState.DISPATCHED)
    report = await dependencies.get_contact_service().submit(contact)

    message = SENT_MESSAGE if report.complete else PARTIAL_MESSAGE
    data = ContactReceiptData(
        sent=True,
        notification_sent=report.notification_sent,
        auto_reply_sent=report.auto_reply_sent,
        message=message,
    )
    return ctx.respond(message=message, data=data.to_wire())
