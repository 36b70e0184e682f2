import asyncio
import json

import pytest

from kyc_ai.llm.types import LLMResult

JPEG_URI = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ=="
PNG_URI = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUg=="
WAV_URI = "data:audio/wav;base64,UklGRiQAAABXQVZFZm10IBAAAAAB"
WEBM_URI = "data:audio/webm;codecs=opus;base64,GkXfo59ChoEB"


class StubBackend:
    """Scripted generative backend.

    Each call consumes the next scripted response; the last one repeats.
    A response may be a dict (returned as JSON text), a str (raw text),
    an LLMResult, or an exception to raise.
    """

    def __init__(self, *responses, delay_s: float = 0.0):
        self.responses = list(responses)
        self.delay_s = delay_s
        self.calls = []

    async def invoke(self, prompt, output_schema, *, timeout_s, schema_name="output"):
        self.calls.append(
            {
                "prompt": prompt,
                "output_schema": output_schema,
                "timeout_s": timeout_s,
                "schema_name": schema_name,
            }
        )
        if self.delay_s:
            await asyncio.sleep(self.delay_s)

        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, LLMResult):
            return item
        if isinstance(item, str):
            return LLMResult(provider="stub", model="stub", raw_text=item)
        return LLMResult(provider="stub", model="stub", raw_text=json.dumps(item))


@pytest.fixture
def stub_backend():
    """Factory fixture: stub_backend(resp1, resp2, ..., delay_s=0.0)."""

    def _make(*responses, delay_s: float = 0.0):
        return StubBackend(*responses, delay_s=delay_s)

    return _make


@pytest.fixture
def data_uris():
    return {"jpeg": JPEG_URI, "png": PNG_URI, "wav": WAV_URI, "webm": WEBM_URI}
