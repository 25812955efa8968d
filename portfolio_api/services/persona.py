"""Professional profile used as the chatbot persona.

The profile is plain text published at ``LLM_PERSONA_URL``. It is fetched
once and cached for the life of the process; when the URL is unset or the
fetch fails, a built-in profile is used and the fetch is retried on the next
call.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from portfolio_api.core.config import settings

logger = logging.getLogger(__name__)

PERSONA_FETCH_TIMEOUT_SECONDS = 10.0


def fallback_profile(owner_name: str, site_url: str) -> str:
    return (
        f"{owner_name} is a full-stack developer with an interest in applied AI.\n"
        "\n"
        "Technical skills:\n"
        "- Frontend: JavaScript, HTML5, CSS3, React, Vue.js\n"
        "- Backend: Python, FastAPI, Node.js\n"
        "- Databases: PostgreSQL, MySQL, MongoDB\n"
        "- Cloud: AWS, Google Cloud, Firebase\n"
        "\n"
        "Professional focus:\n"
        "- Building scalable web applications\n"
        "- Integrating AI solutions into business processes\n"
        "- Creating user-centric digital experiences\n"
        "\n"
        f"Portfolio: {site_url}\n"
    )


class PersonaLoader:
    """Fetch and cache the professional profile.

    Args:
        url: Where the plain-text profile lives; ``None`` disables fetching.
        fallback: Text used when the profile cannot be fetched.
        timeout_seconds: Bound for the HTTP fetch.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        url: str | None,
        fallback: str,
        *,
        timeout_seconds: float = PERSONA_FETCH_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.fallback = fallback
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._profile: str | None = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> bool:
        return self._profile is not None

    async def _fetch(self) -> str:
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            response = await client.get(self.url)
            response.raise_for_status()
        text = response.text.strip()
        if not text:
            raise ValueError("persona document is empty")
        return text

    async def load(self) -> str:
        if self._profile is not None:
            return self._profile
        if not self.url:
            return self.fallback

        async with self._lock:
            if self._profile is not None:
                return self._profile
            try:
                self._profile = await self._fetch()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning(
                    "persona.fallback",
                    extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
                )
                return self.fallback
            logger.info("persona.loaded", extra={"chars": len(self._profile)})
            return self._profile


_persona_loader: PersonaLoader | None = None


def get_persona_loader() -> PersonaLoader:
    global _persona_loader
    if _persona_loader is None:
        _persona_loader = PersonaLoader(
            settings.llm.persona_url,
            fallback_profile(settings.app.owner_name, settings.app.site_url),
        )
    return _persona_loader
