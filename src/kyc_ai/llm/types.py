from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional


@dataclass(frozen=True)
class MediaAttachment:
    """Binary media referenced by position from the prompt text."""

    index: int
    field: str
    media_type: str
    uri: str

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")

    @property
    def is_audio(self) -> bool:
        return self.media_type.startswith("audio/")


@dataclass(frozen=True)
class RenderedPrompt:
    """Template-filled text plus zero or more media attachments."""

    text: str
    media: tuple[MediaAttachment, ...] = ()
    instructions: tuple[str, ...] = ()

    def with_instruction(self, instruction: str) -> "RenderedPrompt":
        return replace(self, instructions=self.instructions + (instruction,))

    def full_text(self) -> str:
        if not self.instructions:
            return self.text
        return "\n\n".join((self.text, *self.instructions))


@dataclass(frozen=True)
class LLMResult:
    """Provider-neutral result container.

    `output_json` is set when the provider already returned a structured
    value; otherwise callers parse `raw_text`. Either way the content is
    untrusted until validated.
    """

    provider: str
    model: str
    raw_text: str
    output_json: Optional[Any] = None
