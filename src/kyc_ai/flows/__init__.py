"""Typed AI-flow invocation layer.

External code should generally use :class:`FlowOrchestrator`:

    from kyc_ai.flows import FlowOrchestrator

    flows = FlowOrchestrator.from_env()
    result = await flows.score_risk(
        {"biometrics": "...", "documentVerification": "...", "customerBehavior": "..."}
    )
    if result.ok:
        print(result.output["riskScore"])
"""

from .errors import (
    ErrorKind,
    FlowError,
    InvalidEnumValue,
    MalformedMedia,
    MissingField,
    TemplateFieldMissing,
    TypeMismatch,
    UnknownOperation,
    ValidationError,
)
from .media import BinaryMediaRef
from .operations import (
    CHAT_RESPOND,
    DECISION_EXPLAIN,
    DOCUMENT_EXTRACT,
    FACE_VERIFY,
    RISK_SCORE,
    SPEECH_SYNTHESIZE,
    SPEECH_TRANSCRIBE,
)
from .orchestrator import FlowOrchestrator, FlowState
from .prompt import PromptTemplate, render
from .registry import OperationSpec, SpecRegistry, default_registry, get_spec
from .result import Failure, FlowResult, Success
from .schema import Field, FieldKind, Schema
from .validation import validate

__all__ = [
    "BinaryMediaRef",
    "CHAT_RESPOND",
    "DECISION_EXPLAIN",
    "DOCUMENT_EXTRACT",
    "ErrorKind",
    "FACE_VERIFY",
    "Failure",
    "Field",
    "FieldKind",
    "FlowError",
    "FlowOrchestrator",
    "FlowResult",
    "FlowState",
    "InvalidEnumValue",
    "MalformedMedia",
    "MissingField",
    "OperationSpec",
    "PromptTemplate",
    "RISK_SCORE",
    "SPEECH_SYNTHESIZE",
    "SPEECH_TRANSCRIBE",
    "Schema",
    "SpecRegistry",
    "Success",
    "TemplateFieldMissing",
    "TypeMismatch",
    "UnknownOperation",
    "ValidationError",
    "default_registry",
    "get_spec",
    "render",
    "validate",
]
