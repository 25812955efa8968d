"""Chatbot replies and contact auto-reply text from the generative-AI API.

One strategy for every call: a single provider request bounded by a timeout.
Chat replies surface failures as ``LLMAppError``; contact auto-replies fall
back to a fixed acknowledgement so the visitor always gets an email.
"""

from __future__ import annotations

import asyncio
import logging

from portfolio_api.adapters.llm.base import AbstractLLMClient
from portfolio_api.core.errors import LLMAppError
from portfolio_api.schemas.contact import ContactSubmission
from portfolio_api.services.persona import PersonaLoader

logger = logging.getLogger(__name__)

FALLBACK_AUTO_REPLY = (
    "Thank you for reaching out! I appreciate your interest and will personally "
    "review your message. I'll get back to you within 24-48 hours with a "
    "detailed response."
)

AUTO_REPLY_INSTRUCTION = (
    "Generate a professional auto-reply acknowledging this contact form "
    "submission. Keep it brief but personalized."
)


def build_system_prompt(owner_name: str, profile: str, context: str = "") -> str:
    """Persona prompt sent as the system message."""

    lines = [
        f"You are {owner_name}'s professional assistant. Your role is to provide "
        f"helpful, accurate and professional answers about {owner_name}'s "
        "background, skills and experience.",
        "",
        "PROFESSIONAL DATA:",
        profile.strip(),
        "",
        "GUIDELINES:",
        "1. Be professional, friendly and concise.",
        f"2. Use first-person perspective when speaking as {owner_name}.",
        "3. Stay focused on professional topics.",
        "4. If asked about personal details not provided, politely redirect to professional matters.",
        "5. Keep a positive and engaging tone.",
        "6. Keep contact form replies to 2-3 sentences.",
    ]
    if context:
        lines += ["", f"CONTEXT: {context}"]
    return "\n".join(lines)


class ChatResponder:
    """Generate persona replies through an LLM client.

    Args:
        llm: Provider adapter.
        persona: Loader for the professional profile.
        owner_name: Name the assistant speaks for.
        timeout_seconds: Bound for one reply, persona fetch included.
    """

    def __init__(
        self,
        llm: AbstractLLMClient,
        persona: PersonaLoader,
        *,
        owner_name: str,
        timeout_seconds: float = 25.0,
    ) -> None:
        self.llm = llm
        self.persona = persona
        self.owner_name = owner_name
        self.timeout_seconds = timeout_seconds

    async def _generate(self, context: str, user_message: str) -> str:
        profile = await self.persona.load()
        system_prompt = build_system_prompt(self.owner_name, profile, context)
        return await self.llm.generate_text(system_prompt, user_message)

    async def _generate_bounded(self, context: str, user_message: str) -> str:
        return await asyncio.wait_for(self._generate(context, user_message), timeout=self.timeout_seconds)

    async def reply(self, message: str) -> str:
        """Answer a chat message.

        Raises:
            LLMAppError: When the provider fails or the timeout elapses.
        """

        context = f"This is a chatbot conversation on {self.owner_name}'s portfolio website."
        try:
            return await self._generate_bounded(context, message)
        except asyncio.TimeoutError as exc:
            raise LLMAppError(
                code="llm_timeout",
                message=f"AI provider did not answer within {self.timeout_seconds}s",
                details={"upstream": "llm", "timeout_s": self.timeout_seconds},
            ) from exc
        except RuntimeError as exc:
            raise LLMAppError(
                code="llm_failed",
                message=str(exc),
                details={"upstream": "llm"},
            ) from exc

    async def auto_reply_text(self, contact: ContactSubmission) -> str:
        """Personalised acknowledgement for a contact submission, never raises."""

        context = (
            f"Contact form submission - Name: {contact.name}, "
            f"Subject: {contact.subject}, Message: {contact.message}"
        )
        try:
            return await self._generate_bounded(context, AUTO_REPLY_INSTRUCTION)
        except (asyncio.TimeoutError, RuntimeError) as exc:
            logger.warning(
                "chat.auto_reply_fallback",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return FALLBACK_AUTO_REPLY
