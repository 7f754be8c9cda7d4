"""
LLM provider interface.

Defines the contract for LLM (Large Language Model) access.
Implementations: Gemini API, offline templates
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from vbagen.models.project import Message


class ILLMProvider(ABC):
    """Abstract interface for LLM providers."""

    @abstractmethod
    def get_model_name(self) -> str:
        """
        Get the human-readable model name.

        Returns:
            Model name string for logging/display
        """
        pass

    @abstractmethod
    async def generate(
        self,
        api_key: str,
        history: Sequence[Message],
        prompt: str,
        system_instruction: Optional[str] = None,
    ) -> str:
        """
        Send one chat turn and return the raw reply text.

        Args:
            api_key: Caller-held API key for the hosted model
            history: Earlier conversation turns, oldest first
            prompt: The user's request for this turn
            system_instruction: Role and reply-format instructions

        Returns:
            Reply text (possibly not well-formed)

        Raises:
            GenerationError: Classified failure (invalid key, quota,
                malformed response, network)
        """
        pass
