from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from .types import LLMResult, RenderedPrompt


@dataclass(frozen=True)
class LLMConfig:
    provider: str
    model: str
    api_key_env: str
    timeout_s: float = 30.0
    audio_model: str = ""
    transcribe_model: str = ""
    tts_model: str = ""
    tts_voice: str = "alloy"
    tts_format: str = "wav"


class GenerativeBackend(Protocol):
    """Small interface for "rendered prompt -> structured value" calls.

    Implementations raise `BackendError` subclasses and never retry on their own.
    """

    async def invoke(
        self,
        prompt: RenderedPrompt,
        output_schema: dict[str, Any],
        *,
        timeout_s: float,
        schema_name: str = "output",
    ) -> LLMResult:
        raise NotImplementedError
