"""Typed domain objects shared across plenarlens."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class DocumentKind(str, Enum):
    TRANSCRIPT = "Plenarprotokoll"
    OTHER = "other"

    @classmethod
    def from_raw(cls, value: Optional[str]) -> "DocumentKind":
        if value == cls.TRANSCRIPT.value:
            return cls.TRANSCRIPT
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class SourceLocator:
    """Reference to the published PDF/XML files of a document."""

    pdf_url: Optional[str] = None
    xml_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Document:
    """A plenary protocol including its full text."""

    identifier: str
    kind: DocumentKind
    document_number: Optional[str]
    date: Optional[date]
    title: Optional[str]
    text: str
    publisher: Optional[str] = None
    legislative_period: Optional[int] = None
    source: Optional[SourceLocator] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True, slots=True)
class RetrievalQuery:
    """Filter set for a single request against the transcript search."""

    legislative_period: int
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    title_filter: Optional[str] = None
    cursor: Optional[str] = None

    def with_cursor(self, cursor: Optional[str]) -> "RetrievalQuery":
        return RetrievalQuery(
            legislative_period=self.legislative_period,
            start_date=self.start_date,
            end_date=self.end_date,
            title_filter=self.title_filter,
            cursor=cursor,
        )


@dataclass(frozen=True, slots=True)
class RetrievalPage:
    """One page of search results in server order."""

    total: int
    cursor: Optional[str]
    documents: Tuple[Document, ...]

    @property
    def has_more(self) -> bool:
        return bool(self.cursor)


@dataclass(frozen=True, slots=True)
class DeepAnalysis:
    text: str
    thoughts: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AnalysisEntry:
    """Cached AI artefacts for one document. Either field may be missing."""

    summary: Optional[str] = None
    deep_analysis: Optional[DeepAnalysis] = None


# --- model responses ------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AnswerSegment:
    text: str


@dataclass(frozen=True, slots=True)
class ReasoningSegment:
    text: str


ResponseSegment = Union[AnswerSegment, ReasoningSegment]


@dataclass(frozen=True, slots=True)
class ModelReply:
    """A model response split into user-visible answer and reasoning trace."""

    segments: Tuple[ResponseSegment, ...] = ()

    @property
    def answer(self) -> str:
        return "".join(s.text for s in self.segments if isinstance(s, AnswerSegment)).strip()

    @property
    def thoughts(self) -> Optional[str]:
        parts = [s.text for s in self.segments if isinstance(s, ReasoningSegment)]
        joined = "\n".join(parts).strip()
        return joined or None


# --- conversation ---------------------------------------------------------


class TurnRole(str, Enum):
    USER = "user"
    ASSISTANT = "model"


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE_IDLE = "active_idle"
    AWAITING_RESPONSE = "awaiting_response"
    ERROR_RECOVERED = "error_recovered"


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    role: TurnRole
    text: str
    timestamp: float
    thoughts: Optional[str] = None


# --- credentials and verification -----------------------------------------


@dataclass(slots=True)
class ApiKeys:
    """Credentials for the document API and the language model API."""

    bundestag_key: str = ""
    gemini_key: str = ""


@dataclass(frozen=True, slots=True)
class TierStatus:
    """Reachability of the two Gemini tiers."""

    flash: bool
    pro: bool
    message: Optional[str] = None


@dataclass(frozen=True, slots=True)
class VerificationResult:
    bundestag: bool
    flash: bool
    pro: bool
    message: Optional[str]
    timestamp: datetime

    @property
    def all_ok(self) -> bool:
        return self.bundestag and self.flash and self.pro


__all__ = [
    "AnalysisEntry",
    "AnswerSegment",
    "ApiKeys",
    "ConversationTurn",
    "DeepAnalysis",
    "Document",
    "DocumentKind",
    "ModelReply",
    "ReasoningSegment",
    "ResponseSegment",
    "RetrievalPage",
    "RetrievalQuery",
    "SessionState",
    "SourceLocator",
    "TierStatus",
    "TurnRole",
    "VerificationResult",
]
