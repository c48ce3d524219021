"""AI analysis of plenary protocols."""
from __future__ import annotations

from .cache import AnalysisCache
from .conversation import ConversationSession
from .gemini import GeminiAnalyst, parse_reply, truncate_text

__all__ = ["AnalysisCache", "ConversationSession", "GeminiAnalyst", "parse_reply", "truncate_text"]
