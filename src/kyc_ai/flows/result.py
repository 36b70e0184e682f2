from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Optional, Union

from .errors import ErrorKind, FlowError


@dataclass(frozen=True)
class Success:
    """Validated output of one flow invocation."""

    operation: str
    output: Mapping[str, Any]
    attempts: int = 1

    ok: ClassVar[bool] = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "output", MappingProxyType(dict(self.output)))

    def __getitem__(self, key: str) -> Any:
        return self.output[key]


@dataclass(frozen=True)
class Failure:
    """Why one flow invocation did not produce a trusted output."""

    operation: str
    kind: ErrorKind
    message: str
    attempts: int = 0
    field: Optional[str] = None

    ok: ClassVar[bool] = False

    @classmethod
    def from_error(
        cls, operation: str, error: FlowError, *, attempts: int = 0
    ) -> "Failure":
        return cls(
            operation=operation,
            kind=error.kind,
            message=str(error),
            attempts=attempts,
            field=error.field,
        )


FlowResult = Union[Success, Failure]
