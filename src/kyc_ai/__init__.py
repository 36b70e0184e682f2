"""KYC console AI flows.

Two entry points:
- kyc_ai.flows: schemas, validation, prompt rendering and the orchestrator
- kyc_ai.actions: form-state handlers used by the console
"""

from .flows import Failure, FlowOrchestrator, FlowResult, Success, get_spec

__all__ = ["Failure", "FlowOrchestrator", "FlowResult", "Success", "get_spec"]
