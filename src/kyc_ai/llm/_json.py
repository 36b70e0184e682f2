from __future__ import annotations

import json
import re
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from .errors import LLMError, LLMValidationError

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n(.*?)\n?```$", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def parse_json(text: str) -> Any:
    """Parse JSON from a model response.

    Models asked for JSON sometimes wrap it in a markdown fence or a sentence
    of prose; both are tolerated.
    """

    stripped = (text or "").strip()
    fenced = _FENCE_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1).strip()

    # ValueError also covers integers past the int/str digit limit
    try:
        return json.loads(stripped)
    except ValueError as e:
        match = _OBJECT_RE.search(stripped)
        if match:
            try:
                return json.loads(match.group())
            except ValueError:
                pass
        raise LLMValidationError(f"Failed to parse JSON: {e}") from e


def check_json_schema(schema: dict[str, Any]) -> None:
    """Fail fast when an output-shape descriptor is not a valid JSON Schema."""

    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        raise LLMError(f"Invalid output JSON schema: {e.message}") from e
