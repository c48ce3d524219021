"""Core domain types and errors."""
from __future__ import annotations

from .errors import ApiError, CredentialError, ModelError, NetworkError, PlenarlensError
from .types import (
    AnalysisEntry,
    ApiKeys,
    ConversationTurn,
    DeepAnalysis,
    Document,
    DocumentKind,
    ModelReply,
    RetrievalPage,
    RetrievalQuery,
    SessionState,
    TurnRole,
    VerificationResult,
)

__all__ = [
    "AnalysisEntry",
    "ApiError",
    "ApiKeys",
    "ConversationTurn",
    "CredentialError",
    "DeepAnalysis",
    "Document",
    "DocumentKind",
    "ModelError",
    "ModelReply",
    "NetworkError",
    "PlenarlensError",
    "RetrievalPage",
    "RetrievalQuery",
    "SessionState",
    "TurnRole",
    "VerificationResult",
]
