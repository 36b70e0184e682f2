"""Console-facing handlers around the flows.

Each handler takes the submitted form values and returns a `FormState` the
console can render. Failures carry the flow's message verbatim; a failed
flow never produces data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from kyc_ai import logger as logger_mod

from .flows import ErrorKind, Failure, FlowOrchestrator, FlowResult

log = logger_mod.get_logger()

INPUT_ERROR_KINDS = frozenset(
    {
        ErrorKind.MISSING_FIELD,
        ErrorKind.TYPE_MISMATCH,
        ErrorKind.INVALID_ENUM_VALUE,
        ErrorKind.MALFORMED_MEDIA,
    }
)

CHAT_FALLBACK_RESPONSE = "Invalid input. Please try again."


class ActionError(RuntimeError):
    """Raised by handlers that return the flow output directly."""

    def __init__(self, failure: Failure):
        super().__init__(failure.message)
        self.failure = failure


def _is_input_failure(result: FlowResult) -> bool:
    # Input failures happen before the backend is called.
    return (
        isinstance(result, Failure)
        and result.attempts == 0
        and result.kind in INPUT_ERROR_KINDS
    )


@dataclass(frozen=True)
class FormState:
    success: bool
    message: str
    data: Optional[Mapping[str, Any]] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def from_result(cls, result: FlowResult, success_message: str) -> "FormState":
        if isinstance(result, Failure):
            message = result.message
            if _is_input_failure(result):
                message = f"Invalid input. {result.message}"
            return cls(success=False, message=message, error_kind=result.kind)
        return cls(success=True, message=success_message, data=dict(result.output))


def _output_or_raise(result: FlowResult) -> dict[str, Any]:
    if isinstance(result, Failure):
        raise ActionError(result)
    return dict(result.output)


async def handle_document_verification(
    flows: FlowOrchestrator, form: Mapping[str, Any]
) -> FormState:
    result = await flows.extract_document(form)
    return FormState.from_result(result, "Verification successful.")


async def handle_face_verification(
    flows: FlowOrchestrator, form: Mapping[str, Any]
) -> FormState:
    result = await flows.verify_face(form)
    return FormState.from_result(result, "Verification successful.")


async def handle_risk_scoring(
    flows: FlowOrchestrator, form: Mapping[str, Any]
) -> FormState:
    result = await flows.score_risk(form)
    return FormState.from_result(result, "Scoring successful.")


async def handle_explain_decision(
    flows: FlowOrchestrator, form: Mapping[str, Any]
) -> FormState:
    """`decisionDetails` may be submitted as JSON text; it is parsed on validation."""

    result = await flows.explain_decision(form)
    return FormState.from_result(result, "Explanation generated.")


async def handle_chat(
    flows: FlowOrchestrator, message: Mapping[str, Any]
) -> dict[str, Any]:
    result = await flows.chat(message)
    if _is_input_failure(result):
        log.debug(f"Chat input rejected: {result.message}")
        return {"response": CHAT_FALLBACK_RESPONSE}
    return _output_or_raise(result)


async def handle_text_to_speech(
    flows: FlowOrchestrator, payload: Mapping[str, Any]
) -> dict[str, Any]:
    return _output_or_raise(await flows.synthesize(payload))


async def handle_speech_to_text(
    flows: FlowOrchestrator, payload: Mapping[str, Any]
) -> dict[str, Any]:
    return _output_or_raise(await flows.transcribe(payload))
