import os

from dotenv import load_dotenv

# Load from .env if it exists (useful for local development)
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


LOGGING_LEVEL = os.getenv("LOGGING_LEVEL", "INFO").upper() or "INFO"

# Generative backend
LLM_PROVIDER = os.getenv("KYC_LLM_PROVIDER", "openai")
LLM_MODEL = os.getenv("KYC_LLM_MODEL", "gpt-4o-mini")
AUDIO_MODEL = os.getenv("KYC_AUDIO_MODEL", "gpt-4o-audio-preview")
TRANSCRIBE_MODEL = os.getenv("KYC_TRANSCRIBE_MODEL", "gpt-4o-mini-transcribe")
TTS_MODEL = os.getenv("KYC_TTS_MODEL", "gpt-4o-mini-tts")
TTS_VOICE = os.getenv("KYC_TTS_VOICE", "alloy")
TTS_FORMAT = os.getenv("KYC_TTS_FORMAT", "wav")
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"

# Flow orchestration
FLOW_TIMEOUT_S = float(os.getenv("KYC_FLOW_TIMEOUT_S", "30"))
FLOW_RETRY_ON_INVALID_OUTPUT = _env_bool("KYC_FLOW_RETRY_ON_INVALID_OUTPUT", True)
