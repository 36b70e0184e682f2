"""Schema validation and best-effort coercion.

Used unchanged for caller input and for backend output. Pure: no I/O.

Coercions applied before a kind mismatch is reported:
- numeral strings become numbers ("42" -> 42, "0.5" -> 0.5)
- "true"/"false" strings become booleans
- numbers become strings where a string is expected
- enum strings match case-insensitively and take the declared spelling
- JSON object text becomes a JSON mapping
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from typing import Any, Callable

from .errors import InvalidEnumValue, MalformedMedia, MissingField, TypeMismatch
from .media import BinaryMediaRef
from .schema import Field, FieldKind, Schema

_MISSING = object()

_NUMERAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_INT_RE = re.compile(r"^[+-]?\d+$")


def kind_of(value: Any) -> str:
    """Name the kind of a raw value, for error messages."""

    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, BinaryMediaRef):
        return "binaryMediaRef"
    if isinstance(value, Mapping):
        return "mapping"
    if isinstance(value, (list, tuple)):
        return "sequence"
    return type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_numeral(text: str) -> int | float | None:
    s = text.strip()
    if not _NUMERAL_RE.match(s):
        return None
    if _INT_RE.match(s):
        try:
            return int(s)
        except ValueError:
            # beyond the interpreter's int/str digit limit
            return None
    value = float(s)
    return value if math.isfinite(value) else None


def _number_to_str(value: int | float) -> str | None:
    try:
        return str(value)
    except ValueError:
        return None


def _scalar_to_str(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if _is_number(value):
        return _number_to_str(value)
    return None


def _check_string(f: Field, value: Any) -> Any:
    if isinstance(value, str):
        return value
    if _is_number(value):
        text = _number_to_str(value)
        if text is not None:
            return text
    raise TypeMismatch(f.name, f.kind_label, kind_of(value))


def _check_number(f: Field, value: Any) -> Any:
    if _is_number(value):
        number = value
    elif isinstance(value, str):
        number = parse_numeral(value)
        if number is None:
            raise TypeMismatch(f.name, f.kind_label, "string")
    else:
        raise TypeMismatch(f.name, f.kind_label, kind_of(value))

    if isinstance(number, float) and not math.isfinite(number):
        raise TypeMismatch(f.name, f.kind_label, "non-finite number")

    if f.minimum is not None and number < f.minimum:
        number = f.minimum
    if f.maximum is not None and number > f.maximum:
        number = f.maximum
    return number


def _check_boolean(f: Field, value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise TypeMismatch(f.name, f.kind_label, kind_of(value))


def _check_enum(f: Field, value: Any) -> Any:
    if not isinstance(value, str):
        raise TypeMismatch(f.name, f.kind_label, kind_of(value))
    if value in f.values:
        return value
    wanted = value.strip().lower()
    for allowed in f.values:
        if allowed.lower() == wanted:
            return allowed
    raise InvalidEnumValue(f.name, value, f.values)


def _check_string_map(f: Field, value: Any) -> Any:
    if not isinstance(value, Mapping):
        raise TypeMismatch(f.name, f.kind_label, kind_of(value))

    out: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise TypeMismatch(f.name, f.kind_label, "mapping with non-string keys")
        if item is None:
            continue
        text = _scalar_to_str(item)
        if text is None:
            raise TypeMismatch(f"{f.name}.{key}", "string", kind_of(item))
        out[key] = text
    return out


def _check_json_map(f: Field, value: Any) -> Any:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise TypeMismatch(f.name, f.kind_label, "string") from None
        if not isinstance(value, dict):
            raise TypeMismatch(f.name, f.kind_label, f"JSON {kind_of(value)}")
    elif not isinstance(value, Mapping):
        raise TypeMismatch(f.name, f.kind_label, kind_of(value))

    if not all(isinstance(k, str) for k in value):
        raise TypeMismatch(f.name, f.kind_label, "mapping with non-string keys")
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError):
        raise TypeMismatch(f.name, f.kind_label, "mapping with non-JSON values") from None
    return dict(value)


def _check_string_list(f: Field, value: Any) -> Any:
    if not isinstance(value, (list, tuple)):
        raise TypeMismatch(f.name, f.kind_label, kind_of(value))

    out: list[str] = []
    for i, item in enumerate(value):
        text = _scalar_to_str(item) if not isinstance(item, bool) else None
        if text is not None:
            out.append(text)
        else:
            raise TypeMismatch(f"{f.name}[{i}]", "string", kind_of(item))
    return out


def _check_media(f: Field, value: Any) -> Any:
    try:
        BinaryMediaRef.parse(value)
    except ValueError:
        raise MalformedMedia(f.name) from None
    return value


_CHECKERS: dict[FieldKind, Callable[[Field, Any], Any]] = {
    FieldKind.STRING: _check_string,
    FieldKind.NUMBER: _check_number,
    FieldKind.BOOLEAN: _check_boolean,
    FieldKind.ENUM: _check_enum,
    FieldKind.STRING_MAP: _check_string_map,
    FieldKind.JSON_MAP: _check_json_map,
    FieldKind.STRING_LIST: _check_string_list,
    FieldKind.MEDIA: _check_media,
}


def _is_absent(f: Field, value: Any) -> bool:
    if value is _MISSING or value is None:
        return True
    return f.non_empty and isinstance(value, str) and not value.strip()


def validate(schema: Schema, value: Any) -> dict[str, Any]:
    """Check `value` against `schema` and return the validated mapping.

    Unknown keys are dropped. Keys keep the order they had in `value`;
    absent optional fields are not filled in. Raises a ValidationError
    subclass on the first field (in schema order) that cannot be accepted.
    """

    if not isinstance(value, Mapping):
        raise TypeMismatch("$", "mapping", kind_of(value))

    checked: dict[str, Any] = {}
    for f in schema:
        raw = value.get(f.name, _MISSING)
        if _is_absent(f, raw):
            if f.required:
                raise MissingField(f.name)
            continue
        checked[f.name] = _CHECKERS[f.kind](f, raw)

    return {key: checked[key] for key in value if key in checked}
