"""Factory pattern for creating LLM client instances."""

from portfolio_api.adapters.llm.base import AbstractLLMClient
from portfolio_api.adapters.llm.openai_client import OpenAIClient
from portfolio_api.core.config import LLMSettings, settings
from portfolio_api.core.errors import SystemAppError

# Providers reachable through the OpenAI SDK with a base_url.
OPENAI_COMPATIBLE_PROVIDERS = {"openai", "gemini"}


def create_llm_client(cfg: LLMSettings | None = None) -> AbstractLLMClient:
    """Factory function to instantiate LLM clients based on provider.

    Reads configuration from portfolio_api.core.config.settings unless
    ``cfg`` is given.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        SystemAppError: If the provider is unknown or has no API key.
    """
    cfg = cfg or settings.llm
    provider = cfg.provider.lower()

    if provider in OPENAI_COMPATIBLE_PROVIDERS:
        if not cfg.api_key:
            raise SystemAppError(
                code="llm_missing_api_key",
                message=f"{provider} provider requires LLM_API_KEY environment variable",
            )
        return OpenAIClient(
            api_key=cfg.api_key,
            model=cfg.model,
            base_url=cfg.base_url,
            timeout_seconds=cfg.timeout_seconds,
            temperature=cfg.temperature,
            max_tokens=cfg.max_output_tokens,
        )

    raise SystemAppError(
        code="llm_unknown_provider",
        message=(
            f"Unknown LLM provider: '{provider}'. Supported providers: "
            + ", ".join(sorted(OPENAI_COMPATIBLE_PROVIDERS))
        ),
    )
