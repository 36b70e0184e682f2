from __future__ import annotations

from enum import Enum
from typing import Any, Sequence


class ErrorKind(str, Enum):
    MISSING_FIELD = "missing_field"
    TYPE_MISMATCH = "type_mismatch"
    INVALID_ENUM_VALUE = "invalid_enum_value"
    MALFORMED_MEDIA = "malformed_media"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    UNKNOWN_OPERATION = "unknown_operation"
    TEMPLATE_FIELD_MISSING = "template_field_missing"


class FlowError(Exception):
    """Base error for kyc_ai.flows."""

    kind: ErrorKind

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class ValidationError(FlowError):
    """A value does not conform to a schema."""


class MissingField(ValidationError):
    kind = ErrorKind.MISSING_FIELD

    def __init__(self, name: str):
        super().__init__(f"Missing required field '{name}'", field=name)
        self.name = name


class TypeMismatch(ValidationError):
    kind = ErrorKind.TYPE_MISMATCH

    def __init__(self, name: str, expected_kind: str, actual_kind: str):
        super().__init__(
            f"Field '{name}' expected {expected_kind}, got {actual_kind}", field=name
        )
        self.name = name
        self.expected_kind = expected_kind
        self.actual_kind = actual_kind


class InvalidEnumValue(ValidationError):
    kind = ErrorKind.INVALID_ENUM_VALUE

    def __init__(self, name: str, value: Any, allowed: Sequence[str]):
        super().__init__(
            f"Field '{name}' has value {value!r}; allowed: {', '.join(allowed)}",
            field=name,
        )
        self.name = name
        self.value = value
        self.allowed = tuple(allowed)


class MalformedMedia(ValidationError):
    kind = ErrorKind.MALFORMED_MEDIA

    def __init__(self, name: str):
        super().__init__(
            f"Field '{name}' is not a media reference of the form "
            "'data:<mimetype>;base64,<encoded_data>'",
            field=name,
        )
        self.name = name


class UnknownOperation(FlowError):
    kind = ErrorKind.UNKNOWN_OPERATION

    def __init__(self, name: str):
        super().__init__(f"Unknown operation '{name}'")
        self.name = name


class TemplateFieldMissing(FlowError):
    """A prompt template references a field its input schema does not declare."""

    kind = ErrorKind.TEMPLATE_FIELD_MISSING

    def __init__(self, name: str, detail: str = "is not declared by the input schema"):
        super().__init__(f"Template field '{name}' {detail}", field=name)
        self.name = name
