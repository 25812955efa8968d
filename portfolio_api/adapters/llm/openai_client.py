"""OpenAI LLM client adapter."""

from typing import Any

from openai import AsyncOpenAI

from portfolio_api.adapters.llm.base import AbstractLLMClient


class OpenAIClient(AbstractLLMClient):
    """Client for OpenAI chat completions returning plain text.

    Uses the official OpenAI Python SDK with async support. Any
    OpenAI-compatible endpoint can be targeted through ``base_url``.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 25.0,
        temperature: float = 0.7,
        max_tokens: int = 200,
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: API key for authentication (server side only).
            model: Model name (e.g., "gpt-4o-mini").
            base_url: Optional custom base URL for an OpenAI-compatible API.
            timeout_seconds: Timeout for requests in seconds.
            temperature: Default sampling temperature.
            max_tokens: Default cap on reply length.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate_text(
        self,
        system_prompt: str,
        user_message: str,
        **kwargs: Any,
    ) -> str:
        """Generate a reply using OpenAI chat completions.

        Args:
            system_prompt: Persona/instructions sent as the system message.
            user_message: Visitor message sent as the user message.
            **kwargs: Provider options (temperature, max_tokens, top_p, etc.).

        Returns:
            str: Reply text.

        Raises:
            RuntimeError: If the API call fails or the response is empty.
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]

        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.pop("temperature", self.temperature),
            "max_tokens": kwargs.pop("max_tokens", self.max_tokens),
        }

        allowed_params = {
            "top_p",
            "frequency_penalty",
            "presence_penalty",
            "seed",
        }
        for param in allowed_params:
            if param in kwargs:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
            content = response.choices[0].message.content
        except Exception as exc:
            raise RuntimeError(f"OpenAI API error: {str(exc)}") from exc

        if content is None or not content.strip():
            raise RuntimeError("LLM returned empty response")

        return content.strip()
