"""
Gemini API provider.

Calls the Gemini API with the signed-in user's own API key (no shared
server key), and classifies every failure into a GenerationError.
"""

from __future__ import annotations

from typing import Optional, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai.types import Content, GenerateContentConfig, Part

from vbagen.core.config import Settings, get_settings
from vbagen.core.exceptions import GenerationError
from vbagen.core.logger import logger
from vbagen.interfaces.llm_provider import ILLMProvider
from vbagen.models.enums import GenerationErrorReason, MessageRole
from vbagen.models.project import Message


def classify_api_error(exc: genai_errors.APIError) -> GenerationErrorReason:
    """Map a Gemini API error to a generation failure reason."""
    code = exc.code or 0
    message = (exc.message or "").lower()
    if code in (401, 403) or (code == 400 and "api key" in message):
        return GenerationErrorReason.INVALID_KEY
    if code == 429 or exc.status == "RESOURCE_EXHAUSTED":
        return GenerationErrorReason.QUOTA_EXCEEDED
    if code >= 500:
        return GenerationErrorReason.NETWORK
    return GenerationErrorReason.MALFORMED_RESPONSE


def to_contents(history: Sequence[Message], prompt: str) -> list[Content]:
    """Build Gemini chat contents: assistant turns are sent with the "model" role."""
    contents = [
        Content(
            role="user" if message.role == MessageRole.USER else "model",
            parts=[Part(text=message.content)],
        )
        for message in history
    ]
    contents.append(Content(role="user", parts=[Part(text=prompt)]))
    return contents


class GeminiAPIProvider(ILLMProvider):
    """Gemini API provider using a per-request API key."""

    def __init__(self, model_name: str, settings: Settings | None = None):
        """
        Initialize Gemini API provider.

        Args:
            model_name: Gemini model name (e.g., "gemini-2.0-flash")
            settings: Generation parameters; defaults to application settings
        """
        self._model_name = model_name
        self._settings = settings or get_settings()

    def get_model_name(self) -> str:
        """Get human-readable model name."""
        return f"Gemini API ({self._model_name})"

    def _create_client(self, api_key: str) -> genai.Client:
        return genai.Client(api_key=api_key)

    def _build_config(self, system_instruction: Optional[str]) -> GenerateContentConfig:
        config_kwargs: dict = {
            "temperature": self._settings.GEMINI_TEMPERATURE,
            "top_k": self._settings.GEMINI_TOP_K,
            "top_p": self._settings.GEMINI_TOP_P,
            "max_output_tokens": self._settings.GEMINI_MAX_OUTPUT_TOKENS,
        }
        if system_instruction:
            config_kwargs["system_instruction"] = system_instruction
        return GenerateContentConfig(**config_kwargs)

    async def generate(
        self,
        api_key: str,
        history: Sequence[Message],
        prompt: str,
        system_instruction: Optional[str] = None,
    ) -> str:
        client = self._create_client(api_key)
        try:
            response = await client.aio.models.generate_content(
                model=self._model_name,
                contents=to_contents(history, prompt),
                config=self._build_config(system_instruction),
            )
        except genai_errors.APIError as exc:
            reason = classify_api_error(exc)
            logger.warning(f"Gemini request failed ({reason.value}): {exc.code} {exc.status}")
            raise GenerationError(reason, exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.warning(f"Gemini request failed (network): {exc}")
            raise GenerationError(GenerationErrorReason.NETWORK, str(exc)) from exc

        text = (response.text or "").strip()
        if not text:
            raise GenerationError(
                GenerationErrorReason.MALFORMED_RESPONSE, "Model returned an empty reply"
            )
        return text
