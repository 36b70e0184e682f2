import pytest

from kyc_ai import actions
from kyc_ai.flows import ErrorKind, FlowOrchestrator
from kyc_ai.llm.errors import BackendUnavailable


@pytest.mark.asyncio
async def test_document_verification_success(stub_backend, data_uris):
    flows = FlowOrchestrator(
        stub_backend({"userDetails": {"name": "Asha Rao"}, "confidenceScore": 0.92})
    )

    state = await actions.handle_document_verification(
        flows, {"documentDataUri": data_uris["jpeg"], "documentType": "Aadhaar"}
    )

    assert state.success is True
    assert state.message == "Verification successful."
    assert state.data == {"userDetails": {"name": "Asha Rao"}, "confidenceScore": 0.92}


@pytest.mark.asyncio
async def test_invalid_form_is_reported_without_data(stub_backend, data_uris):
    backend = stub_backend({})
    flows = FlowOrchestrator(backend)

    state = await actions.handle_document_verification(
        flows, {"documentDataUri": data_uris["jpeg"], "documentType": "Passport"}
    )

    assert state.success is False
    assert state.message.startswith("Invalid input.")
    assert state.error_kind == ErrorKind.INVALID_ENUM_VALUE
    assert state.data is None
    assert backend.calls == []


@pytest.mark.asyncio
async def test_backend_failure_message_is_verbatim(stub_backend):
    flows = FlowOrchestrator(stub_backend(BackendUnavailable("model overloaded")))

    state = await actions.handle_risk_scoring(
        flows,
        {"biometrics": "ok", "documentVerification": "ok", "customerBehavior": "ok"},
    )

    assert state.success is False
    assert state.message == "model overloaded"
    assert state.error_kind == ErrorKind.UNAVAILABLE


@pytest.mark.asyncio
async def test_explain_decision_parses_json_details(stub_backend):
    backend = stub_backend(
        {"explanation": "Flagged", "confidenceScore": 0.7, "supportingEvidence": ["geo"]}
    )
    flows = FlowOrchestrator(backend)

    state = await actions.handle_explain_decision(
        flows,
        {
            "decisionType": "Fraud Detection",
            "decisionDetails": '{"score": 0.83, "rule": "geo-velocity"}',
            "relevantData": "Login from two countries within an hour",
        },
    )

    assert state.success is True
    assert state.message == "Explanation generated."
    assert '{"rule": "geo-velocity", "score": 0.83}' in backend.calls[0]["prompt"].text


@pytest.mark.asyncio
async def test_face_verification_and_scoring_messages(stub_backend, data_uris):
    face = FlowOrchestrator(stub_backend({"isMatch": True, "confidence": 0.95}))
    risk = FlowOrchestrator(stub_backend({"riskScore": "low", "explanation": "ok"}))

    face_state = await actions.handle_face_verification(
        face, {"selfieDataUri": data_uris["jpeg"], "licensePhotoDataUri": data_uris["jpeg"]}
    )
    risk_state = await actions.handle_risk_scoring(
        risk, {"biometrics": "ok", "documentVerification": "ok", "customerBehavior": "ok"}
    )

    assert face_state.message == "Verification successful."
    assert face_state.data == {"isMatch": True, "confidence": 0.95}
    assert risk_state.message == "Scoring successful."


@pytest.mark.asyncio
async def test_chat_falls_back_on_invalid_input(stub_backend):
    backend = stub_backend({"response": "unused"})
    flows = FlowOrchestrator(backend)

    out = await actions.handle_chat(flows, {"userQuery": "", "language": "Tamil"})

    assert out == {"response": actions.CHAT_FALLBACK_RESPONSE}
    assert backend.calls == []


@pytest.mark.asyncio
async def test_chat_returns_flow_output(stub_backend):
    flows = FlowOrchestrator(stub_backend({"response": "வணக்கம்"}))

    out = await actions.handle_chat(flows, {"userQuery": "Hello", "language": "Tamil"})

    assert out == {"response": "வணக்கம்"}


@pytest.mark.asyncio
async def test_speech_handlers_raise_on_failure(stub_backend, data_uris):
    flows = FlowOrchestrator(stub_backend(BackendUnavailable("down")))

    with pytest.raises(actions.ActionError) as exc:
        await actions.handle_speech_to_text(flows, {"audioDataUri": data_uris["wav"]})

    assert exc.value.failure.kind == ErrorKind.UNAVAILABLE


@pytest.mark.asyncio
async def test_speech_handlers_return_output(stub_backend, data_uris):
    stt = FlowOrchestrator(stub_backend({"text": "my name is Asha"}))
    tts = FlowOrchestrator(stub_backend({"audioDataUri": data_uris["wav"]}))

    assert await actions.handle_speech_to_text(stt, {"audioDataUri": data_uris["wav"]}) == {
        "text": "my name is Asha"
    }
    assert await actions.handle_text_to_speech(tts, {"text": "Welcome"}) == {
        "audioDataUri": data_uris["wav"]
    }


@pytest.mark.asyncio
async def test_unexpected_backend_error_becomes_failed_form_state(stub_backend):
    flows = FlowOrchestrator(stub_backend(RuntimeError("socket closed")))

    state = await actions.handle_risk_scoring(
        flows,
        {"biometrics": "ok", "documentVerification": "ok", "customerBehavior": "ok"},
    )

    assert state.success is False
    assert state.message == "socket closed"
    assert state.error_kind == ErrorKind.UNAVAILABLE
