"""Recherche und KI-Analyse von Bundestagsprotokollen."""
from __future__ import annotations

from .analysis import AnalysisCache, ConversationSession, GeminiAnalyst, truncate_text
from .clients import DIPClient, DIPClientError, ResilientTransport
from .config import AppConfig, DIPConfig, GeminiConfig, LoggingConfig, load_config
from .core import (
    AnalysisEntry,
    ApiError,
    ApiKeys,
    ConversationTurn,
    CredentialError,
    DeepAnalysis,
    Document,
    ModelError,
    NetworkError,
    PlenarlensError,
    RetrievalPage,
    RetrievalQuery,
    SessionState,
)
from .retrieval import DocumentRetriever, SearchStatus
from .runtime import create_workspace
from .workspace import AnalysisWorkspace

__all__ = [
    "AnalysisCache",
    "AnalysisEntry",
    "AnalysisWorkspace",
    "ApiError",
    "ApiKeys",
    "AppConfig",
    "ConversationSession",
    "ConversationTurn",
    "CredentialError",
    "DIPClient",
    "DIPClientError",
    "DIPConfig",
    "DeepAnalysis",
    "Document",
    "DocumentRetriever",
    "GeminiAnalyst",
    "GeminiConfig",
    "LoggingConfig",
    "ModelError",
    "NetworkError",
    "PlenarlensError",
    "ResilientTransport",
    "RetrievalPage",
    "RetrievalQuery",
    "SearchStatus",
    "SessionState",
    "create_workspace",
    "load_config",
    "truncate_text",
]
