import base64
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from kyc_ai.llm.base import LLMConfig
from kyc_ai.llm.errors import (
    BackendErrorKind,
    BackendTimeout,
    BackendUnavailable,
    LLMError,
    RateLimited,
    Rejected,
)
from kyc_ai.llm.factory import build_backend
from kyc_ai.llm.openai_client import OpenAIBackend, classify_openai_error
from kyc_ai.llm.types import MediaAttachment, RenderedPrompt

_REQ = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {"text": {"type": "string"}},
    "required": ["text"],
}

SPEECH_SCHEMA = {
    "type": "object",
    "properties": {"audioDataUri": {"type": "string", "format": "data-uri"}},
    "required": ["audioDataUri"],
}


def _status_error(cls, status, message="boom"):
    return cls(message, response=httpx.Response(status, request=_REQ), body=None)


def _completion(content, *, finish_reason="stop", refusal=None):
    message = SimpleNamespace(content=content, refusal=refusal)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)]
    )


class _FakeClient:
    def __init__(self, *results):
        self.results = list(results)
        self.completion_calls = []
        self.speech_calls = []
        self.transcription_calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self.audio = SimpleNamespace(
            speech=SimpleNamespace(create=self._speech),
            transcriptions=SimpleNamespace(create=self._transcribe),
        )

    async def _create(self, **kwargs):
        self.completion_calls.append(kwargs)
        item = self.results.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def _speech(self, **kwargs):
        self.speech_calls.append(kwargs)
        item = self.results.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def _transcribe(self, **kwargs):
        self.transcription_calls.append(kwargs)
        item = self.results.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def _backend(client):
    cfg = LLMConfig(
        provider="openai",
        model="gpt-test",
        api_key_env="OPENAI_API_KEY",
        audio_model="gpt-audio-test",
        tts_model="tts-test",
        tts_voice="nova",
        tts_format="mp3",
    )
    return OpenAIBackend(cfg, client=client)


# =====================================================
# Error classification
# =====================================================


def test_classify_openai_errors():
    assert isinstance(classify_openai_error(openai.APITimeoutError(request=_REQ)), BackendTimeout)
    assert isinstance(
        classify_openai_error(openai.APIConnectionError(request=_REQ)), BackendUnavailable
    )
    assert isinstance(
        classify_openai_error(_status_error(openai.RateLimitError, 429)), RateLimited
    )
    assert isinstance(
        classify_openai_error(_status_error(openai.BadRequestError, 400)), Rejected
    )
    assert isinstance(
        classify_openai_error(_status_error(openai.PermissionDeniedError, 403)), Rejected
    )
    assert isinstance(
        classify_openai_error(_status_error(openai.InternalServerError, 503)),
        BackendUnavailable,
    )
    assert isinstance(
        classify_openai_error(_status_error(openai.AuthenticationError, 401)),
        BackendUnavailable,
    )


# =====================================================
# Completions
# =====================================================


@pytest.mark.asyncio
async def test_invoke_text_prompt_requests_structured_output():
    client = _FakeClient(_completion(' {"text": "hi"} '))
    backend = _backend(client)

    result = await backend.invoke(
        RenderedPrompt(text="Say hi"), OUTPUT_SCHEMA, timeout_s=7, schema_name="chat_respond"
    )

    assert result.raw_text == '{"text": "hi"}'
    assert result.output_json is None
    assert result.model == "gpt-test"
    call = client.completion_calls[0]
    assert call["messages"] == [{"role": "user", "content": "Say hi"}]
    assert call["response_format"]["json_schema"]["name"] == "chat_respond"
    assert call["response_format"]["json_schema"]["schema"] == OUTPUT_SCHEMA
    assert call["timeout"] == 7


@pytest.mark.asyncio
async def test_invoke_sends_media_parts_in_order():
    client = _FakeClient(_completion('{"text": "ok"}'))
    backend = _backend(client)
    prompt = RenderedPrompt(
        text="Compare [attachment 1: image/jpeg] and listen to [attachment 2: audio/wav]",
        media=(
            MediaAttachment(1, "selfie", "image/jpeg", "data:image/jpeg;base64,AAAA"),
            MediaAttachment(2, "clip", "audio/wav", "data:audio/wav;base64,UklG"),
        ),
    )

    await backend.invoke(prompt, OUTPUT_SCHEMA, timeout_s=5)

    call = client.completion_calls[0]
    content = call["messages"][0]["content"]
    assert content[0] == {"type": "text", "text": prompt.text}
    assert content[1] == {
        "type": "image_url",
        "image_url": {"url": "data:image/jpeg;base64,AAAA"},
    }
    assert content[2] == {
        "type": "input_audio",
        "input_audio": {"data": "UklG", "format": "wav"},
    }
    assert call["model"] == "gpt-audio-test"


@pytest.mark.asyncio
async def test_invoke_includes_retry_instructions():
    client = _FakeClient(_completion('{"text": "ok"}'))
    backend = _backend(client)
    prompt = RenderedPrompt(text="Say hi").with_instruction("JSON only please.")

    await backend.invoke(prompt, OUTPUT_SCHEMA, timeout_s=5)

    assert client.completion_calls[0]["messages"][0]["content"] == (
        "Say hi\n\nJSON only please."
    )


@pytest.mark.asyncio
async def test_invoke_falls_back_when_response_format_unsupported():
    unsupported = _status_error(
        openai.BadRequestError, 400, "Invalid parameter: 'response_format' of type 'json_schema'"
    )
    client = _FakeClient(unsupported, _completion('{"text": "ok"}'))
    backend = _backend(client)

    result = await backend.invoke(RenderedPrompt(text="Say hi"), OUTPUT_SCHEMA, timeout_s=5)

    assert result.raw_text == '{"text": "ok"}'
    fallback = client.completion_calls[1]
    assert "response_format" not in fallback
    assert fallback["messages"][-1]["role"] == "system"
    assert json.dumps(OUTPUT_SCHEMA, sort_keys=True) in fallback["messages"][-1]["content"]


@pytest.mark.asyncio
async def test_invoke_maps_sdk_errors():
    client = _FakeClient(_status_error(openai.RateLimitError, 429))
    backend = _backend(client)

    with pytest.raises(RateLimited) as exc:
        await backend.invoke(RenderedPrompt(text="Say hi"), OUTPUT_SCHEMA, timeout_s=5)

    assert exc.value.kind == BackendErrorKind.RATE_LIMITED
    assert len(client.completion_calls) == 1


@pytest.mark.asyncio
async def test_refusal_and_content_filter_are_rejections():
    backend = _backend(_FakeClient(_completion(None, refusal="I can't help with that")))
    with pytest.raises(Rejected):
        await backend.invoke(RenderedPrompt(text="x"), OUTPUT_SCHEMA, timeout_s=5)

    backend = _backend(_FakeClient(_completion("", finish_reason="content_filter")))
    with pytest.raises(Rejected):
        await backend.invoke(RenderedPrompt(text="x"), OUTPUT_SCHEMA, timeout_s=5)


@pytest.mark.asyncio
async def test_empty_choices_is_unavailable():
    backend = _backend(_FakeClient(SimpleNamespace(choices=[])))

    with pytest.raises(BackendUnavailable):
        await backend.invoke(RenderedPrompt(text="x"), OUTPUT_SCHEMA, timeout_s=5)


# =====================================================
# Transcription
# =====================================================

WEBM = MediaAttachment(
    1, "audioDataUri", "audio/webm", "data:audio/webm;codecs=opus;base64,GkXfo59ChoEB"
)


@pytest.mark.asyncio
async def test_recorded_webm_audio_uses_transcription_endpoint():
    client = _FakeClient(SimpleNamespace(text=" my name is Asha "))
    backend = _backend(client)
    prompt = RenderedPrompt(text="Transcribe [attachment 1: audio/webm]", media=(WEBM,))

    result = await backend.invoke(prompt, OUTPUT_SCHEMA, timeout_s=5)

    assert result.output_json == {"text": "my name is Asha"}
    assert result.model == "whisper-1"
    call = client.transcription_calls[0]
    assert call["file"] == ("audioDataUri.webm", base64.b64decode("GkXfo59ChoEB"), "audio/webm")
    assert call["timeout"] == 5
    assert client.completion_calls == []


@pytest.mark.asyncio
async def test_webm_audio_is_never_labelled_as_wav():
    client = _FakeClient(_completion('{"text": "ok", "lang": "en"}'))
    backend = _backend(client)
    schema = {
        "type": "object",
        "properties": {"text": {"type": "string"}, "lang": {"type": "string"}},
    }

    with pytest.raises(Rejected):
        await backend.invoke(RenderedPrompt(text="x", media=(WEBM,)), schema, timeout_s=5)

    assert client.completion_calls == []
    assert client.transcription_calls == []


# =====================================================
# Speech synthesis
# =====================================================


@pytest.mark.asyncio
async def test_media_output_schema_uses_speech_endpoint():
    client = _FakeClient(SimpleNamespace(content=b"ID3audio"))
    backend = _backend(client)

    result = await backend.invoke(RenderedPrompt(text="Welcome"), SPEECH_SCHEMA, timeout_s=5)

    expected = "data:audio/mpeg;base64," + base64.b64encode(b"ID3audio").decode("ascii")
    assert result.output_json == {"audioDataUri": expected}
    assert client.speech_calls[0]["input"] == "Welcome"
    assert client.speech_calls[0]["voice"] == "nova"
    assert client.completion_calls == []


# =====================================================
# Construction
# =====================================================


def test_missing_api_key_raises(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(LLMError):
        OpenAIBackend(LLMConfig(provider="openai", model="m", api_key_env="OPENAI_API_KEY"))


def test_build_backend(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    backend = build_backend(provider="OpenAI", model="gpt-x")

    assert isinstance(backend, OpenAIBackend)
    assert backend.config.model == "gpt-x"

    with pytest.raises(LLMError):
        build_backend(provider="nope", model="m")
