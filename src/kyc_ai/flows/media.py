from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BinaryMediaRef:
    """Externally-encoded image or audio content, addressed by a data URI.

    Only structure is checked: a media type and a non-empty payload. The
    payload is never decoded.
    """

    media_type: str
    payload: str
    encoding: str = "base64"
    params: tuple[str, ...] = ()

    @classmethod
    def parse(cls, value: Any) -> "BinaryMediaRef":
        """Parse `data:<mediatype>[;params][;base64],<payload>`.

        Raises ValueError when the reference is not well formed.
        """

        if isinstance(value, BinaryMediaRef):
            return value
        if not isinstance(value, str):
            raise ValueError("media reference must be a string")

        text = value.strip()
        if text[:5].lower() != "data:":
            raise ValueError("media reference must be a data URI")

        header, sep, payload = text[5:].partition(",")
        if not sep or not payload.strip():
            raise ValueError("media reference has no payload")

        parts = [p.strip() for p in header.split(";")]
        media_type = parts[0].lower()
        if "/" not in media_type or media_type.startswith("/") or media_type.endswith("/"):
            raise ValueError("media reference has no media type")

        encoding = ""
        params = []
        for p in parts[1:]:
            if p.lower() == "base64":
                encoding = "base64"
            elif p:
                params.append(p)

        return cls(
            media_type=media_type,
            payload=payload.strip(),
            encoding=encoding,
            params=tuple(params),
        )

    @property
    def category(self) -> str:
        return self.media_type.split("/", 1)[0]

    def to_uri(self) -> str:
        header = ";".join((self.media_type, *self.params))
        if self.encoding:
            header = f"{header};{self.encoding}"
        return f"data:{header},{self.payload}"
