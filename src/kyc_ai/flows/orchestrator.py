from __future__ import annotations

import asyncio
import json
from enum import Enum
from typing import Any, Mapping, Optional

from kyc_ai import config
from kyc_ai import logger as logger_mod
from kyc_ai.llm import BackendError, GenerativeBackend, LLMResult, LLMValidationError
from kyc_ai.llm._json import parse_json

from . import operations as ops
from .errors import ErrorKind, TypeMismatch, UnknownOperation, ValidationError
from .prompt import render
from .registry import OperationSpec, SpecRegistry, default_registry
from .result import Failure, FlowResult, Success
from .validation import validate

log = logger_mod.get_logger()


class FlowState(str, Enum):
    VALIDATING = "validating"
    RENDERING = "rendering"
    INVOKING = "invoking"
    VALIDATING_OUTPUT = "validating_output"
    DONE = "done"


def strict_output_instruction(error: ValidationError, output_schema: dict[str, Any]) -> str:
    return (
        f"Your previous response was rejected: {error}. "
        "Respond again with ONLY a JSON object that matches this JSON Schema exactly, "
        "including every required field and using only the allowed values:\n"
        f"{json.dumps(output_schema, sort_keys=True)}"
    )


class FlowOrchestrator:
    """Runs one operation per call: validate, render, invoke, validate output.

    Holds no per-invocation state, so any number of `run` calls may be in
    flight concurrently. Any output that fails validation (unparseable text,
    missing or mistyped field, unknown enum value, malformed media) is retried
    once with a stricter prompt; backend errors are never retried here.
    Unexpected backend exceptions are reported as `UNAVAILABLE`.
    """

    def __init__(
        self,
        backend: GenerativeBackend,
        *,
        registry: Optional[SpecRegistry] = None,
        timeout_s: Optional[float] = None,
        retry_on_invalid_output: Optional[bool] = None,
    ) -> None:
        self._backend = backend
        self._registry = registry
        self._timeout_s = float(
            config.FLOW_TIMEOUT_S if timeout_s is None else timeout_s
        )
        self._retry_on_invalid_output = (
            config.FLOW_RETRY_ON_INVALID_OUTPUT
            if retry_on_invalid_output is None
            else bool(retry_on_invalid_output)
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "FlowOrchestrator":
        """Create an orchestrator backed by the configured provider."""

        from kyc_ai.llm import build_backend

        return cls(build_backend(), **kwargs)

    @property
    def registry(self) -> SpecRegistry:
        return self._registry if self._registry is not None else default_registry()

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    def _transition(self, spec: OperationSpec, state: FlowState, attempt: int = 0) -> None:
        suffix = f" (attempt {attempt})" if attempt else ""
        log.debug(f"[{spec.name}] -> {state.value}{suffix}")

    def _finish(self, spec: OperationSpec, result: FlowResult) -> FlowResult:
        self._transition(spec, FlowState.DONE)
        if isinstance(result, Failure):
            log.info(
                f"[{spec.name}] failed after {result.attempts} backend call(s): "
                f"{result.kind.value}: {result.message}"
            )
        return result

    def _validate_output(self, spec: OperationSpec, raw: LLMResult) -> dict[str, Any]:
        data = raw.output_json
        if data is None:
            try:
                data = parse_json(raw.raw_text)
            except LLMValidationError as e:
                raise TypeMismatch("$", "JSON object", "unparseable text") from e
        return validate(spec.output_schema, data)

    async def run(
        self,
        operation: str,
        request: Mapping[str, Any],
        *,
        timeout_s: Optional[float] = None,
    ) -> FlowResult:
        try:
            spec = self.registry.get(operation)
        except UnknownOperation as e:
            log.warning(str(e))
            return Failure.from_error(operation, e)

        self._transition(spec, FlowState.VALIDATING)
        try:
            validated = validate(spec.input_schema, request)
        except ValidationError as e:
            return self._finish(spec, Failure.from_error(spec.name, e))

        self._transition(spec, FlowState.RENDERING)
        prompt = render(spec, validated)
        output_schema = spec.output_json_schema()
        timeout = self._timeout_s if timeout_s is None else float(timeout_s)
        max_attempts = 2 if self._retry_on_invalid_output else 1

        for attempt in range(1, max_attempts + 1):
            self._transition(spec, FlowState.INVOKING, attempt)
            try:
                raw = await asyncio.wait_for(
                    self._backend.invoke(
                        prompt,
                        output_schema,
                        timeout_s=timeout,
                        schema_name=spec.schema_name,
                    ),
                    timeout,
                )
            except asyncio.TimeoutError:
                return self._finish(
                    spec,
                    Failure(
                        operation=spec.name,
                        kind=ErrorKind.TIMEOUT,
                        message=f"Backend did not respond within {timeout:g}s",
                        attempts=attempt,
                    ),
                )
            except asyncio.CancelledError:
                log.warning(f"[{spec.name}] cancelled while waiting for the backend")
                return self._finish(
                    spec,
                    Failure(
                        operation=spec.name,
                        kind=ErrorKind.CANCELLED,
                        message="Invocation was cancelled",
                        attempts=attempt,
                    ),
                )
            except BackendError as e:
                return self._finish(
                    spec,
                    Failure(
                        operation=spec.name,
                        kind=ErrorKind(e.kind.value),
                        message=str(e),
                        attempts=attempt,
                    ),
                )
            except Exception as e:
                log.exception(f"[{spec.name}] backend raised an unexpected error: {e}")
                return self._finish(
                    spec,
                    Failure(
                        operation=spec.name,
                        kind=ErrorKind.UNAVAILABLE,
                        message=str(e) or type(e).__name__,
                        attempts=attempt,
                    ),
                )

            self._transition(spec, FlowState.VALIDATING_OUTPUT, attempt)
            try:
                output = self._validate_output(spec, raw)
            except ValidationError as e:
                if attempt < max_attempts:
                    log.warning(
                        f"[{spec.name}] backend output rejected ({e}); retrying once with a stricter prompt"
                    )
                    prompt = prompt.with_instruction(
                        strict_output_instruction(e, output_schema)
                    )
                    continue
                log.error(f"[{spec.name}] backend output rejected: {e}")
                return self._finish(
                    spec, Failure.from_error(spec.name, e, attempts=attempt)
                )

            return self._finish(
                spec, Success(operation=spec.name, output=output, attempts=attempt)
            )

        # Unreachable: every attempt returns or continues to the next one.
        raise AssertionError("flow attempts exhausted without a result")

    async def extract_document(self, request: Mapping[str, Any], **kwargs: Any) -> FlowResult:
        return await self.run(ops.DOCUMENT_EXTRACT, request, **kwargs)

    async def verify_face(self, request: Mapping[str, Any], **kwargs: Any) -> FlowResult:
        return await self.run(ops.FACE_VERIFY, request, **kwargs)

    async def score_risk(self, request: Mapping[str, Any], **kwargs: Any) -> FlowResult:
        return await self.run(ops.RISK_SCORE, request, **kwargs)

    async def explain_decision(self, request: Mapping[str, Any], **kwargs: Any) -> FlowResult:
        return await self.run(ops.DECISION_EXPLAIN, request, **kwargs)

    async def chat(self, request: Mapping[str, Any], **kwargs: Any) -> FlowResult:
        return await self.run(ops.CHAT_RESPOND, request, **kwargs)

    async def transcribe(self, request: Mapping[str, Any], **kwargs: Any) -> FlowResult:
        return await self.run(ops.SPEECH_TRANSCRIBE, request, **kwargs)

    async def synthesize(self, request: Mapping[str, Any], **kwargs: Any) -> FlowResult:
        return await self.run(ops.SPEECH_SYNTHESIZE, request, **kwargs)
