from __future__ import annotations

from fastapi import APIRouter, Request, Response

from portfolio_api.api import dependencies
from portfolio_api.core.config import settings
from portfolio_api.core.pipeline import RequestPipeline, RequestState
from portfolio_api.core.rate_limit import LimitClass
from portfolio_api.schemas.chat import chat_field_rules
from portfolio_api.schemas.envelope import ChatReplyData

router = APIRouter(tags=["Chatbot"])

CHATBOT_PATH = "/api/chatbot"


@router.api_route(CHATBOT_PATH, methods=["POST", "OPTIONS"])
async def chatbot(request: Request) -> Response:
    """Answer a visitor question as the portfolio owner's assistant.

    Body: ``{"message": str}``. ``OPTIONS`` is answered as a CORS preflight.

    Returns:
        Success envelope with ``data.response`` holding the reply.

    Raises:
        AppError: 400/403/429 from the admission pipeline, 502 when the AI
            provider fails or times out.
    """

    pipeline = RequestPipeline(LimitClass.CHATBOT, chat_field_rules(settings.validation))
    ctx = await pipeline.run(request)
    if ctx.response is not None:
        return ctx.response

    ctx.advance(RequestState.DISPATCHED)
    reply = await dependencies.get_chat_responder().reply(ctx.fields["message"])
    return ctx.respond(
        message="Response generated successfully",
        data=ChatReplyData(response=reply).to_wire(),
    )
