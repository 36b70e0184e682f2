from __future__ import annotations

import base64
import binascii
import json
import os
from typing import Any, Optional

import openai

from kyc_ai import logger as logger_mod

from .base import GenerativeBackend, LLMConfig
from .errors import (
    BackendError,
    BackendTimeout,
    BackendUnavailable,
    LLMError,
    RateLimited,
    Rejected,
)
from .types import LLMResult, MediaAttachment, RenderedPrompt

log = logger_mod.get_logger()

_AUDIO_INPUT_FORMATS = {
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
}

# Audio the transcription endpoint takes as an upload but chat completions
# cannot take inline. Values are the file extensions it recognises.
_TRANSCRIPTION_FORMATS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/mp4": "mp4",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "audio/flac": "flac",
    "audio/x-flac": "flac",
}

_SPEECH_MEDIA_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "opus": "audio/ogg",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "pcm": "audio/L16",
}

JSON_ONLY_INSTRUCTION = (
    "Return ONLY valid JSON matching this JSON Schema. No markdown, no prose."
)


def json_only_instruction(output_schema: dict[str, Any]) -> str:
    return f"{JSON_ONLY_INSTRUCTION}\n{json.dumps(output_schema, sort_keys=True)}"


def classify_openai_error(error: openai.OpenAIError) -> BackendError:
    """Map an OpenAI SDK exception onto the backend error taxonomy."""

    msg = str(error)

    # APITimeoutError subclasses APIConnectionError, so check it first
    if isinstance(error, openai.APITimeoutError):
        return BackendTimeout(msg)
    if isinstance(error, openai.APIConnectionError):
        return BackendUnavailable(msg)
    if isinstance(error, openai.RateLimitError):
        return RateLimited(msg)
    if isinstance(
        error,
        (
            openai.BadRequestError,
            openai.PermissionDeniedError,
            openai.UnprocessableEntityError,
        ),
    ):
        return Rejected(msg)

    if isinstance(error, openai.APIStatusError):
        status = error.status_code
        if status == 408:
            return BackendTimeout(msg)
        if status == 429:
            return RateLimited(msg)
        return BackendUnavailable(msg)

    return BackendUnavailable(msg)


def _media_output_field(output_schema: dict[str, Any]) -> Optional[str]:
    for name, prop in (output_schema.get("properties") or {}).items():
        if isinstance(prop, dict) and prop.get("format") == "data-uri":
            return name
    return None


def _single_string_output(output_schema: dict[str, Any]) -> Optional[str]:
    props = output_schema.get("properties") or {}
    if len(props) != 1:
        return None
    name, prop = next(iter(props.items()))
    if isinstance(prop, dict) and prop.get("type") == "string" and "format" not in prop:
        return name
    return None


def _media_part(att: MediaAttachment) -> dict[str, Any]:
    if att.is_image:
        return {"type": "image_url", "image_url": {"url": att.uri}}

    _, _, payload = att.uri.partition(",")
    if att.is_audio:
        fmt = _AUDIO_INPUT_FORMATS.get(att.media_type)
        if fmt is None:
            raise Rejected(
                f"Audio type {att.media_type} cannot be sent inline with a chat completion"
            )
        return {
            "type": "input_audio",
            "input_audio": {"data": payload, "format": fmt},
        }
    return {
        "type": "file",
        "file": {"filename": f"{att.field}-{att.index}", "file_data": att.uri},
    }


class OpenAIBackend(GenerativeBackend):
    """OpenAI client wrapper.

    Supports four call shapes:
    - Structured Outputs (preferred) via chat completions json_schema
    - Fallback to JSON-only text output when the model rejects the format
    - Speech synthesis when the output schema asks for a single media field
    - Transcription upload for recorded audio (webm, ogg, ...) that chat
      completions cannot take inline, when the output is a single string
    """

    def __init__(self, config: LLMConfig, *, client: Any = None):
        self._cfg = config
        if client is None:
            api_key = os.getenv(config.api_key_env)
            if not api_key:
                raise LLMError(
                    f"Missing env var {config.api_key_env} for OpenAI API key"
                )
            client = openai.AsyncOpenAI(api_key=api_key)
        self._client = client

    @property
    def config(self) -> LLMConfig:
        return self._cfg

    async def invoke(
        self,
        prompt: RenderedPrompt,
        output_schema: dict[str, Any],
        *,
        timeout_s: float,
        schema_name: str = "output",
    ) -> LLMResult:
        try:
            media_field = _media_output_field(output_schema)
            if media_field and not prompt.media:
                return await self._synthesize(prompt, media_field, timeout_s)
            text_field = _single_string_output(output_schema)
            if text_field and self._wants_transcription(prompt):
                return await self._transcribe(prompt.media[0], text_field, timeout_s)
            return await self._complete(prompt, output_schema, schema_name, timeout_s)
        except openai.OpenAIError as e:
            err = classify_openai_error(e)
            log.warning(f"OpenAI call failed ({err.kind.value}): {e}")
            raise err from e

    def _wants_transcription(self, prompt: RenderedPrompt) -> bool:
        if len(prompt.media) != 1:
            return False
        return prompt.media[0].media_type in _TRANSCRIPTION_FORMATS

    def _messages(self, prompt: RenderedPrompt) -> list[dict[str, Any]]:
        if not prompt.media:
            return [{"role": "user", "content": prompt.full_text()}]
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt.full_text()}]
        content.extend(_media_part(att) for att in prompt.media)
        return [{"role": "user", "content": content}]

    def _model_for(self, prompt: RenderedPrompt) -> str:
        if self._cfg.audio_model and any(att.is_audio for att in prompt.media):
            return self._cfg.audio_model
        return self._cfg.model

    async def _complete(
        self,
        prompt: RenderedPrompt,
        output_schema: dict[str, Any],
        schema_name: str,
        timeout_s: float,
    ) -> LLMResult:
        model = self._model_for(prompt)
        messages = self._messages(prompt)

        try:
            resp = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema_name,
                        "schema": output_schema,
                        "strict": False,
                    },
                },
                timeout=timeout_s,
            )
        except openai.BadRequestError as e:
            if "response_format" not in str(e).lower():
                raise
            log.warning(
                f"OpenAI structured output unsupported by {model}; falling back to JSON-only. err={e}"
            )
            resp = await self._client.chat.completions.create(
                model=model,
                messages=messages
                + [{"role": "system", "content": json_only_instruction(output_schema)}],
                temperature=0.2,
                timeout=timeout_s,
            )

        if not resp.choices:
            raise BackendUnavailable(f"OpenAI returned no choices for {model}")
        choice = resp.choices[0]
        if getattr(choice, "finish_reason", None) == "content_filter":
            raise Rejected("OpenAI stopped the response with its content filter")

        message = choice.message
        refusal = getattr(message, "refusal", None)
        if refusal:
            raise Rejected(f"OpenAI refused the request: {refusal}")

        raw = (message.content or "").strip()
        return LLMResult(provider="openai", model=model, raw_text=raw)

    async def _transcribe(
        self, att: MediaAttachment, field: str, timeout_s: float
    ) -> LLMResult:
        _, _, payload = att.uri.partition(",")
        try:
            audio = base64.b64decode(payload)
        except binascii.Error as e:
            raise Rejected(f"Audio attachment {att.field} is not valid base64") from e

        model = self._cfg.transcribe_model or "whisper-1"
        ext = _TRANSCRIPTION_FORMATS[att.media_type]
        resp = await self._client.audio.transcriptions.create(
            model=model,
            file=(f"{att.field}.{ext}", audio, att.media_type),
            timeout=timeout_s,
        )
        return LLMResult(
            provider="openai",
            model=model,
            raw_text="",
            output_json={field: (resp.text or "").strip()},
        )

    async def _synthesize(
        self, prompt: RenderedPrompt, field: str, timeout_s: float
    ) -> LLMResult:
        fmt = self._cfg.tts_format
        resp = await self._client.audio.speech.create(
            model=self._cfg.tts_model,
            voice=self._cfg.tts_voice,
            input=prompt.text,
            response_format=fmt,
            timeout=timeout_s,
        )
        audio = base64.b64encode(resp.content).decode("ascii")
        media_type = _SPEECH_MEDIA_TYPES.get(fmt, f"audio/{fmt}")
        uri = f"data:{media_type};base64,{audio}"
        return LLMResult(
            provider="openai",
            model=self._cfg.tts_model,
            raw_text="",
            output_json={field: uri},
        )
