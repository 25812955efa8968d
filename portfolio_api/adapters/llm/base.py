from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
	"""Interface for LLM clients that produce a plain-text reply."""

	@abstractmethod
	async def generate_text(
		self,
		system_prompt: str,
		user_message: str,
		**kwargs: Any,
	) -> str:
		"""Generate one reply from the model.

		Args:
			system_prompt: Persona and instructions for the model.
			user_message: The visitor text the model answers.
			**kwargs: Provider-specific options (e.g., temperature, max_tokens).

		Returns:
			str: The reply text, stripped of surrounding whitespace.

		Raises:
			RuntimeError: If the provider call fails or returns no text.
		"""
		...
