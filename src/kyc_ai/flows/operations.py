"""The seven KYC operations and the process-wide registry holding them."""

from __future__ import annotations

from . import schema as s
from .prompt import PromptTemplate
from .registry import OperationSpec, SpecRegistry

DOCUMENT_EXTRACT = "document.extract"
FACE_VERIFY = "face.verify"
RISK_SCORE = "risk.score"
DECISION_EXPLAIN = "decision.explain"
CHAT_RESPOND = "chat.respond"
SPEECH_TRANSCRIBE = "speech.transcribe"
SPEECH_SYNTHESIZE = "speech.synthesize"

DOCUMENT_TYPES = ("Aadhaar", "PAN")
RISK_LEVELS = ("low", "medium", "high")

_DATA_URI_HINT = "data URI with a MIME type and base64 payload"


DOCUMENT_EXTRACT_SPEC = OperationSpec(
    name=DOCUMENT_EXTRACT,
    description="Extract user details from an identity document image.",
    input_schema=s.Schema.of(
        s.media("documentDataUri", description=f"Document image as a {_DATA_URI_HINT}."),
        s.enum("documentType", DOCUMENT_TYPES, description="The type of document uploaded."),
    ),
    output_schema=s.Schema.of(
        s.string_map("userDetails", description="Extracted user details from the document."),
        s.confidence("confidenceScore", description="Confidence score of the extraction (0-1)."),
    ),
    template=PromptTemplate.parse(
        """You are an expert assistant specializing in extracting information from identity documents.

You will receive a document image and the document type. Extract all relevant user details from the document.
Set a confidence score between 0 and 1 based on how confident you are in the extracted information.

Document Type: {{documentType}}
Document Image: {{media documentDataUri}}

Output the extracted user details as a JSON object."""
    ),
)

FACE_VERIFY_SPEC = OperationSpec(
    name=FACE_VERIFY,
    description="Compare a live selfie with the photo on a driver's license.",
    input_schema=s.Schema.of(
        s.media("selfieDataUri", description=f"Selfie of the user as a {_DATA_URI_HINT}."),
        s.media(
            "licensePhotoDataUri",
            description=f"Photo of the user's driver's license as a {_DATA_URI_HINT}.",
        ),
    ),
    output_schema=s.Schema.of(
        s.boolean("isMatch", description="Whether the selfie and license photo match."),
        s.confidence("confidence", description="Confidence of the match decision (0-1)."),
        s.string("reason", required=False, description="Reason for the match result."),
    ),
    template=PromptTemplate.parse(
        """You are an expert in face verification. Compare the user's selfie with their driver's license photo and determine whether the two photos show the same person.

Selfie: {{media selfieDataUri}}
Driver's License: {{media licensePhotoDataUri}}

Output a JSON object with the following fields:
- isMatch: true if the faces match, false otherwise.
- confidence: a number between 0 and 1 indicating the confidence level of the match.
- reason: optional, a brief explanation for the match result.

Be strict to prevent identity fraud. Faces, lighting and image quality must be similar enough to confirm a match."""
    ),
)

RISK_SCORE_SPEC = OperationSpec(
    name=RISK_SCORE,
    description="Categorize customer risk from biometric, document and behavior signals.",
    input_schema=s.Schema.of(
        s.string("biometrics", non_empty=True, description="Biometric data of the user."),
        s.string(
            "documentVerification",
            non_empty=True,
            description="Results of document verification.",
        ),
        s.string("customerBehavior", non_empty=True, description="Customer behavior data."),
    ),
    output_schema=s.Schema.of(
        s.enum("riskScore", RISK_LEVELS, description="Risk category: low, medium or high."),
        s.string("explanation", description="Explanation of the risk category."),
    ),
    template=PromptTemplate.parse(
        """You are an expert in risk assessment for financial institutions.
Given the following information about a user, categorize their risk as low, medium, or high and briefly explain your assessment.

Biometrics: {{biometrics}}
Document Verification: {{documentVerification}}
Customer Behavior: {{customerBehavior}}

Consider the consistency of the biometric data, the authenticity of the documents, and any unusual or suspicious behavior patterns."""
    ),
)

DECISION_EXPLAIN_SPEC = OperationSpec(
    name=DECISION_EXPLAIN,
    description="Explain an automated KYC decision for auditors.",
    input_schema=s.Schema.of(
        s.string(
            "decisionType",
            non_empty=True,
            description="The kind of decision to explain (e.g. Risk Score, Fraud Detection).",
        ),
        s.json_map("decisionDetails", description="Detailed information about the decision."),
        s.string(
            "relevantData",
            non_empty=True,
            description="Data the decision was based on (document details, biometric data).",
        ),
    ),
    output_schema=s.Schema.of(
        s.string("explanation", description="Human-readable explanation of the decision."),
        s.confidence("confidenceScore", description="Reliability of the decision (0-1)."),
        s.string_list("supportingEvidence", description="Evidence supporting the decision."),
    ),
    template=PromptTemplate.parse(
        """You are an explanation specialist who gives auditors clear and concise explanations of automated decisions.

Decision Type: {{decisionType}}
Decision Details: {{decisionDetails}}
Relevant Data: {{relevantData}}

Based on the decision type, details and relevant data, write a human-readable explanation of the decision.
Include a confidence score (0-1) indicating the reliability of the decision and list the supporting evidence used to arrive at it.
Make the explanation easy for an auditor to follow and highlight the key factors that influenced the outcome."""
    ),
)

CHAT_RESPOND_SPEC = OperationSpec(
    name=CHAT_RESPOND,
    description="Answer KYC support questions in the user's regional language.",
    input_schema=s.Schema.of(
        s.string("userQuery", non_empty=True, description="The user query in their regional language."),
        s.string("language", non_empty=True, description="The regional language of the user."),
    ),
    output_schema=s.Schema.of(
        s.string("response", description="The assistant's answer in the user's language."),
    ),
    template=PromptTemplate.parse(
        """You are a multilingual assistant that helps users with the KYC process in their regional language.

User Query: {{userQuery}}
Language: {{language}}

Respond to the user query in the same language as the query.
Help them navigate the KYC process and answer their questions. Keep responses concise and helpful."""
    ),
)

SPEECH_TRANSCRIBE_SPEC = OperationSpec(
    name=SPEECH_TRANSCRIBE,
    description="Transcribe a recording of the user's voice.",
    input_schema=s.Schema.of(
        s.media("audioDataUri", description=f"Voice recording as a {_DATA_URI_HINT}."),
    ),
    output_schema=s.Schema.of(
        s.string("text", description="The transcribed text."),
    ),
    template=PromptTemplate.parse(
        """Transcribe the following audio recording.

Audio: {{media audioDataUri}}"""
    ),
)

SPEECH_SYNTHESIZE_SPEC = OperationSpec(
    name=SPEECH_SYNTHESIZE,
    description="Read text aloud.",
    input_schema=s.Schema.of(
        s.string("text", non_empty=True, description="The text to speak."),
    ),
    output_schema=s.Schema.of(
        s.media("audioDataUri", description=f"Synthesized speech as a {_DATA_URI_HINT}."),
    ),
    template=PromptTemplate.parse("{{text}}"),
)

ALL_SPECS = (
    DOCUMENT_EXTRACT_SPEC,
    FACE_VERIFY_SPEC,
    RISK_SCORE_SPEC,
    DECISION_EXPLAIN_SPEC,
    CHAT_RESPOND_SPEC,
    SPEECH_TRANSCRIBE_SPEC,
    SPEECH_SYNTHESIZE_SPEC,
)


def build_registry() -> SpecRegistry:
    registry = SpecRegistry()
    for spec in ALL_SPECS:
        registry.register(spec)
    return registry.freeze()


REGISTRY = build_registry()
