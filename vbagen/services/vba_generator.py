"""
VBA generation client.

Stateless adapter between a conversation and the LLM provider: builds the
instruction, forwards the history, and coerces whatever comes back into a
GenerationResult.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional, Sequence

from vbagen.core.exceptions import GenerationError
from vbagen.core.logger import logger
from vbagen.interfaces.llm_provider import ILLMProvider
from vbagen.models.enums import GenerationErrorReason
from vbagen.models.generation import GenerationResult
from vbagen.models.project import Message
from vbagen.models.user import normalize_secret_key

VBA_SYSTEM_INSTRUCTION = """You are an Excel VBA expert. Create VBA code for the user's requirement.
Provide your response as JSON in the following format:
{
  "vbaCode": "the complete VBA code",
  "explanation": "detailed explanation of how to use the code"
}"""

DEFAULT_EXPLANATION = (
    "Here's the VBA code I generated based on your requirements. "
    "You can copy this code into the VBA editor in Excel."
)

_FENCE_RE = re.compile(r"```(?P<lang>[A-Za-z]*)[ \t]*\r?\n?(?P<body>.*?)```", re.DOTALL)


def _fenced_blocks(text: str) -> list[tuple[str, str]]:
    return [(m.group("lang").lower(), m.group("body").strip()) for m in _FENCE_RE.finditer(text)]


def _parse_json_object(text: str) -> Optional[dict[str, Any]]:
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def parse_reply(text: str) -> GenerationResult:
    """
    Best-effort coercion of a model reply.

    Accepts the requested JSON object (bare or inside a ```json fence);
    otherwise the first ```vba block, or the whole reply, becomes the code.
    """
    candidates = [text.strip()]
    candidates.extend(body for lang, body in _fenced_blocks(text) if lang in ("json", ""))
    for candidate in candidates:
        data = _parse_json_object(candidate)
        if data and isinstance(data.get("vbaCode"), str):
            explanation = data.get("explanation")
            return GenerationResult(
                generated_code=data["vbaCode"],
                explanation=explanation if isinstance(explanation, str) and explanation else DEFAULT_EXPLANATION,
            )

    code = next((body for lang, body in _fenced_blocks(text) if lang in ("vba", "vb")), None)
    return GenerationResult(
        generated_code=code if code is not None else text.strip(),
        explanation=DEFAULT_EXPLANATION,
        structured=False,
    )


class VbaGenerator:
    """Generate VBA code for a conversation turn."""

    def __init__(self, llm_provider: ILLMProvider):
        self._llm_provider = llm_provider

    async def generate(
        self,
        prompt: str,
        history: Sequence[Message],
        secret_key: Optional[str],
    ) -> GenerationResult:
        """
        Generate code for ``prompt`` given the earlier turns.

        Raises:
            GenerationError: INVALID_KEY when no key is held (checked before any
                provider call), or the provider's classified failure
        """
        api_key = normalize_secret_key(secret_key)
        if api_key is None:
            raise GenerationError(GenerationErrorReason.INVALID_KEY, "No API key configured")

        reply = await self._llm_provider.generate(
            api_key,
            list(history),
            prompt,
            system_instruction=VBA_SYSTEM_INSTRUCTION,
        )
        result = parse_reply(reply)
        if not result.structured:
            logger.info(
                f"{self._llm_provider.get_model_name()} reply was not JSON; used fallback extraction"
            )
        return result
