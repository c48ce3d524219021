"""In-memory store of per-document analysis results."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Optional
import logging

from ..core.types import AnalysisEntry

LOGGER = logging.getLogger(__name__)


class AnalysisCache:
    """Keyed store of summaries and deep analyses.

    Entries are never evicted. :meth:`merge` overwrites only the fields that
    are set on the update and keeps the others.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, AnalysisEntry] = {}

    def get(self, identifier: str) -> Optional[AnalysisEntry]:
        return self._entries.get(identifier)

    def merge(self, identifier: str, update: AnalysisEntry) -> AnalysisEntry:
        current = self._entries.get(identifier) or AnalysisEntry()
        changes = {}
        if update.summary is not None:
            changes["summary"] = update.summary
        if update.deep_analysis is not None:
            changes["deep_analysis"] = update.deep_analysis
        merged = replace(current, **changes)
        self._entries[identifier] = merged
        LOGGER.debug("Cached %s for %s", ", ".join(changes) or "nothing", identifier)
        return merged

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["AnalysisCache"]
