from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional


class FieldKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    STRING_MAP = "mapping<string,string>"
    JSON_MAP = "mapping<string,json>"
    STRING_LIST = "sequence<string>"
    MEDIA = "binaryMediaRef"


@dataclass(frozen=True)
class Field:
    """One named, typed slot of a schema.

    - `values` is the closed set for enum fields (and must be empty otherwise).
    - `non_empty` makes a blank string count as absent.
    - `minimum`/`maximum` bound numbers; out-of-range values are clamped.
    """

    name: str
    kind: FieldKind
    required: bool = True
    description: str = ""
    values: tuple[str, ...] = ()
    non_empty: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Field name must be non-empty")

        if self.kind == FieldKind.ENUM:
            if not self.values:
                raise ValueError(f"Enum field '{self.name}' declares no values")
            if not all(isinstance(v, str) and v for v in self.values):
                raise ValueError(
                    f"Enum field '{self.name}' values must be non-empty strings"
                )
            lowered = [v.lower() for v in self.values]
            if len(set(lowered)) != len(lowered):
                raise ValueError(
                    f"Enum field '{self.name}' has values that differ only by case"
                )
        elif self.values:
            raise ValueError(f"Only enum fields may declare values ('{self.name}')")

        if self.minimum is not None or self.maximum is not None:
            if self.kind != FieldKind.NUMBER:
                raise ValueError(f"Only number fields may declare bounds ('{self.name}')")
            if (
                self.minimum is not None
                and self.maximum is not None
                and self.minimum > self.maximum
            ):
                raise ValueError(f"Field '{self.name}' has minimum > maximum")

    @property
    def kind_label(self) -> str:
        if self.kind == FieldKind.ENUM:
            return f"enum<{','.join(self.values)}>"
        return self.kind.value

    def to_json_schema(self) -> dict[str, Any]:
        if self.kind == FieldKind.STRING:
            out: dict[str, Any] = {"type": "string"}
            if self.non_empty:
                out["minLength"] = 1
        elif self.kind == FieldKind.NUMBER:
            out = {"type": "number"}
            if self.minimum is not None:
                out["minimum"] = self.minimum
            if self.maximum is not None:
                out["maximum"] = self.maximum
        elif self.kind == FieldKind.BOOLEAN:
            out = {"type": "boolean"}
        elif self.kind == FieldKind.ENUM:
            out = {"type": "string", "enum": list(self.values)}
        elif self.kind == FieldKind.STRING_MAP:
            out = {"type": "object", "additionalProperties": {"type": "string"}}
        elif self.kind == FieldKind.JSON_MAP:
            out = {"type": "object"}
        elif self.kind == FieldKind.STRING_LIST:
            out = {"type": "array", "items": {"type": "string"}}
        else:
            out = {"type": "string", "format": "data-uri"}

        if self.description:
            out["description"] = self.description
        return out


def string(
    name: str, *, required: bool = True, non_empty: bool = False, description: str = ""
) -> Field:
    return Field(
        name,
        FieldKind.STRING,
        required=required,
        non_empty=non_empty,
        description=description,
    )


def number(
    name: str,
    *,
    required: bool = True,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    description: str = "",
) -> Field:
    return Field(
        name,
        FieldKind.NUMBER,
        required=required,
        minimum=minimum,
        maximum=maximum,
        description=description,
    )


def confidence(name: str, *, description: str = "") -> Field:
    return number(name, minimum=0.0, maximum=1.0, description=description)


def boolean(name: str, *, required: bool = True, description: str = "") -> Field:
    return Field(name, FieldKind.BOOLEAN, required=required, description=description)


def enum(
    name: str, values: tuple[str, ...], *, required: bool = True, description: str = ""
) -> Field:
    return Field(
        name,
        FieldKind.ENUM,
        required=required,
        values=tuple(values),
        description=description,
    )


def string_map(name: str, *, required: bool = True, description: str = "") -> Field:
    return Field(name, FieldKind.STRING_MAP, required=required, description=description)


def json_map(name: str, *, required: bool = True, description: str = "") -> Field:
    return Field(name, FieldKind.JSON_MAP, required=required, description=description)


def string_list(name: str, *, required: bool = True, description: str = "") -> Field:
    return Field(
        name, FieldKind.STRING_LIST, required=required, description=description
    )


def media(name: str, *, required: bool = True, description: str = "") -> Field:
    return Field(name, FieldKind.MEDIA, required=required, description=description)


@dataclass(frozen=True)
class Schema:
    """An ordered set of uniquely named fields."""

    fields: tuple[Field, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for f in self.fields:
            if f.name in seen:
                raise ValueError(f"Duplicate field name '{f.name}' in schema")
            seen.add(f.name)

    @classmethod
    def of(cls, *fields: Field) -> "Schema":
        return cls(tuple(fields))

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, name: object) -> bool:
        return any(f.name == name for f in self.fields)

    def get(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def required_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.required)

    def to_json_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {f.name: f.to_json_schema() for f in self.fields},
            "required": list(self.required_names),
            "additionalProperties": False,
        }
