from __future__ import annotations

from enum import Enum


class LLMError(RuntimeError):
    pass


class LLMValidationError(LLMError):
    """Raised when the model output cannot be parsed into a structured value."""


class BackendErrorKind(str, Enum):
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class BackendError(LLMError):
    """A generative backend call failed. Never retried inside the client."""

    kind: BackendErrorKind = BackendErrorKind.UNAVAILABLE

    def __init__(self, message: str, *, kind: BackendErrorKind | None = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class BackendTimeout(BackendError):
    kind = BackendErrorKind.TIMEOUT


class RateLimited(BackendError):
    kind = BackendErrorKind.RATE_LIMITED


class BackendUnavailable(BackendError):
    kind = BackendErrorKind.UNAVAILABLE


class Rejected(BackendError):
    """The provider refused the request (safety filter, policy, bad input)."""

    kind = BackendErrorKind.REJECTED
