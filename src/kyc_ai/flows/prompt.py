from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from kyc_ai.llm.types import MediaAttachment, RenderedPrompt

from .errors import TemplateFieldMissing
from .media import BinaryMediaRef
from .schema import FieldKind, Schema

if TYPE_CHECKING:
    from .registry import OperationSpec

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(media\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class FieldRef:
    name: str


@dataclass(frozen=True)
class MediaRef:
    name: str


Segment = Union[Text, FieldRef, MediaRef]


@dataclass(frozen=True)
class PromptTemplate:
    """An ordered list of literal text and field references.

    Write templates with `{{field}}` for text and `{{media field}}` for
    attachments; `parse` turns that notation into segments once, at
    declaration time.
    """

    segments: tuple[Segment, ...]

    @classmethod
    def parse(cls, text: str) -> "PromptTemplate":
        segments: list[Segment] = []
        pos = 0
        for match in _PLACEHOLDER_RE.finditer(text):
            if match.start() > pos:
                segments.append(Text(text[pos : match.start()]))
            if match.group(1):
                segments.append(MediaRef(match.group(2)))
            else:
                segments.append(FieldRef(match.group(2)))
            pos = match.end()
        if pos < len(text):
            segments.append(Text(text[pos:]))
        return cls(tuple(segments))

    @property
    def references(self) -> tuple[Union[FieldRef, MediaRef], ...]:
        return tuple(s for s in self.segments if not isinstance(s, Text))

    def bind(self, schema: Schema) -> None:
        """Resolve every reference against `schema`.

        Raises TemplateFieldMissing for undeclared fields and for references
        whose form (text vs. media) does not match the field kind.
        """

        for ref in self.references:
            f = schema.get(ref.name)
            if f is None:
                raise TemplateFieldMissing(ref.name)
            if isinstance(ref, MediaRef) and f.kind != FieldKind.MEDIA:
                raise TemplateFieldMissing(ref.name, "is not a media field")
            if isinstance(ref, FieldRef) and f.kind == FieldKind.MEDIA:
                raise TemplateFieldMissing(
                    ref.name, "is a media field; reference it as {{media name}}"
                )


def to_text(value: Any) -> str:
    """Textual form of a validated value inside a prompt."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, sort_keys=True, ensure_ascii=False)
    return str(value)


def render(spec: "OperationSpec", validated_input: Mapping[str, Any]) -> RenderedPrompt:
    """Materialize `spec.template` against already-validated input.

    Deterministic: the same spec and input always produce an equal prompt.
    """

    parts: list[str] = []
    media: list[MediaAttachment] = []

    for seg in spec.template.segments:
        if isinstance(seg, Text):
            parts.append(seg.text)
            continue

        if seg.name not in spec.input_schema:
            raise TemplateFieldMissing(seg.name)

        value = validated_input.get(seg.name)
        if isinstance(seg, FieldRef):
            parts.append(to_text(value))
            continue

        if value is None:
            continue
        ref = BinaryMediaRef.parse(value)
        index = len(media) + 1
        media.append(
            MediaAttachment(
                index=index,
                field=seg.name,
                media_type=ref.media_type,
                uri=ref.to_uri(),
            )
        )
        parts.append(f"[attachment {index}: {ref.media_type}]")

    return RenderedPrompt(text="".join(parts), media=tuple(media))
