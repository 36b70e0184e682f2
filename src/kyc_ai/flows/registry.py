from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from kyc_ai import logger as logger_mod
from kyc_ai.llm._json import check_json_schema

from .errors import UnknownOperation
from .prompt import PromptTemplate
from .schema import Schema

log = logger_mod.get_logger()


@dataclass(frozen=True)
class OperationSpec:
    """Immutable declaration of one flow: schemas and prompt template."""

    name: str
    input_schema: Schema
    output_schema: Schema
    template: PromptTemplate
    description: str = ""

    @property
    def schema_name(self) -> str:
        return self.name.replace(".", "_")

    def output_json_schema(self) -> dict[str, Any]:
        return self.output_schema.to_json_schema()


class SpecRegistry:
    """Write-once registry of operation specs.

    Populate with `register` during start-up, then `freeze`. After that the
    registry is read-only and safe to share between concurrent flows.
    """

    def __init__(self) -> None:
        self._specs: Mapping[str, OperationSpec] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, spec: OperationSpec) -> OperationSpec:
        if self._frozen:
            raise RuntimeError(
                f"Cannot register '{spec.name}': registry is frozen"
            )
        if spec.name in self._specs:
            raise ValueError(f"Operation '{spec.name}' is already registered")

        spec.template.bind(spec.input_schema)
        check_json_schema(spec.input_schema.to_json_schema())
        check_json_schema(spec.output_json_schema())

        self._specs[spec.name] = spec  # type: ignore[index]
        log.debug(f"Registered operation {spec.name}")
        return spec

    def freeze(self) -> "SpecRegistry":
        if not self._frozen:
            self._specs = MappingProxyType(dict(self._specs))
            self._frozen = True
        return self

    def get(self, name: str) -> OperationSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownOperation(name) from None

    def names(self) -> tuple[str, ...]:
        return tuple(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[OperationSpec]:
        return iter(self._specs.values())


def default_registry() -> SpecRegistry:
    """The process-wide registry of the seven KYC operations."""

    from .operations import REGISTRY

    return REGISTRY


def get_spec(name: str) -> OperationSpec:
    return default_registry().get(name)
