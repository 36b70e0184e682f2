"""Generative backend abstractions.

Design goals:
- Keep provider-specific SDKs isolated.
- Provide a small, stable interface for "rendered prompt -> structured JSON" calls.
- Report failures as a closed set of backend error kinds; never retry here.
"""

from .base import GenerativeBackend, LLMConfig
from .errors import (
    BackendError,
    BackendErrorKind,
    BackendTimeout,
    BackendUnavailable,
    LLMError,
    LLMValidationError,
    RateLimited,
    Rejected,
)
from .factory import build_backend
from .types import LLMResult, MediaAttachment, RenderedPrompt

__all__ = [
    "BackendError",
    "BackendErrorKind",
    "BackendTimeout",
    "BackendUnavailable",
    "GenerativeBackend",
    "LLMConfig",
    "LLMError",
    "LLMResult",
    "LLMValidationError",
    "MediaAttachment",
    "RateLimited",
    "Rejected",
    "RenderedPrompt",
    "build_backend",
]
