from __future__ import annotations

from kyc_ai import config

from .base import GenerativeBackend, LLMConfig
from .errors import LLMError
from .openai_client import OpenAIBackend


def build_backend(
    *, provider: str | None = None, model: str | None = None
) -> GenerativeBackend:
    """Factory for provider backends.

    Providers:
    - openai

    Extend by adding new provider clients and mapping here.
    """

    p = (provider or config.LLM_PROVIDER).lower().strip()
    if p == "openai":
        return OpenAIBackend(
            LLMConfig(
                provider="openai",
                model=model or config.LLM_MODEL,
                api_key_env=config.OPENAI_API_KEY_ENV,
                timeout_s=config.FLOW_TIMEOUT_S,
                audio_model=config.AUDIO_MODEL,
                transcribe_model=config.TRANSCRIBE_MODEL,
                tts_model=config.TTS_MODEL,
                tts_voice=config.TTS_VOICE,
                tts_format=config.TTS_FORMAT,
            )
        )

    raise LLMError(f"Unknown LLM provider: {provider}")
