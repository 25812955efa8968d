"""LLM adapter layer - abstracts over OpenAI-compatible providers."""

from portfolio_api.adapters.llm.base import AbstractLLMClient
from portfolio_api.adapters.llm.factory import create_llm_client
from portfolio_api.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "create_llm_client",
]
