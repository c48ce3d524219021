"""Paginated search state for the protocol list."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional
import logging

from .clients import DIPClient
from .core.errors import PlenarlensError
from .core.types import Document, RetrievalQuery

LOGGER = logging.getLogger(__name__)

EMPTY_RESULT_MESSAGE = "Keine Protokolle für diese Kriterien gefunden."


class SearchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    EMPTY = "empty"
    ERROR = "error"


class DocumentRetriever:
    """Holds the current result list and its pagination cursor.

    Every fresh search increments a generation counter. A page that resolves
    under an older generation belongs to a superseded query and is dropped.
    """

    def __init__(self, client: DIPClient) -> None:
        self._client = client
        self._documents: List[Document] = []
        self._query: Optional[RetrievalQuery] = None
        self._cursor: Optional[str] = None
        self._total = 0
        self._generation = 0
        self._status = SearchStatus.IDLE
        self._message: Optional[str] = None
        self._loading_more = False

    # --- state ----------------------------------------------------------
    @property
    def documents(self) -> tuple[Document, ...]:
        return tuple(self._documents)

    @property
    def status(self) -> SearchStatus:
        return self._status

    @property
    def message(self) -> Optional[str]:
        return self._message

    @property
    def total(self) -> int:
        return self._total

    @property
    def cursor(self) -> Optional[str]:
        return self._cursor

    @property
    def query(self) -> Optional[RetrievalQuery]:
        return self._query

    @property
    def can_load_more(self) -> bool:
        return bool(self._cursor) and self._query is not None and not self._loading_more

    def find(self, identifier: str) -> Optional[Document]:
        for document in self._documents:
            if document.identifier == identifier:
                return document
        return None

    # --- operations -----------------------------------------------------
    async def fresh_search(self, api_key: str, query: RetrievalQuery) -> SearchStatus:
        """Replace the held result list with the first page for ``query``."""

        self._generation += 1
        generation = self._generation
        query = query.with_cursor(None)
        self._query = query
        self._cursor = None
        self._loading_more = False
        self._status = SearchStatus.LOADING
        self._message = None
        try:
            page = await self._client.search(api_key, query)
        except PlenarlensError as exc:
            if generation != self._generation:
                return self._status
            LOGGER.error("Search for legislative period %s failed: %s", query.legislative_period, exc)
            self._documents = []
            self._total = 0
            self._status = SearchStatus.ERROR
            self._message = str(exc)
            return self._status

        if generation != self._generation:
            LOGGER.debug("Discarding results of superseded search")
            return self._status
        self._documents = list(page.documents)
        self._total = page.total
        self._cursor = page.cursor
        if self._documents:
            self._status = SearchStatus.LOADED
        else:
            self._status = SearchStatus.EMPTY
            self._message = EMPTY_RESULT_MESSAGE
        LOGGER.info("Search returned %s of %s protocols", len(self._documents), page.total)
        return self._status

    async def load_more(self, api_key: str) -> SearchStatus:
        """Append the next page of the current query."""

        if not self.can_load_more:
            return self._status
        generation = self._generation
        used_cursor = self._cursor
        query = self._query.with_cursor(used_cursor)
        self._loading_more = True
        self._message = None
        try:
            page = await self._client.search(api_key, query)
        except PlenarlensError as exc:
            if generation == self._generation:
                LOGGER.error("Loading more protocols failed: %s", exc)
                self._loading_more = False
                self._status = SearchStatus.ERROR
                self._message = str(exc)
            return self._status

        if generation != self._generation:
            LOGGER.debug("Discarding stale page for cursor %s", used_cursor)
            return self._status
        self._loading_more = False
        known = {document.identifier for document in self._documents}
        for document in page.documents:
            if document.identifier in known:
                LOGGER.debug("Skipping duplicate protocol %s", document.identifier)
                continue
            known.add(document.identifier)
            self._documents.append(document)
        self._total = page.total
        # a repeated cursor would loop forever
        self._cursor = page.cursor if page.cursor != used_cursor else None
        self._status = SearchStatus.LOADED
        return self._status


__all__ = ["DocumentRetriever", "EMPTY_RESULT_MESSAGE", "SearchStatus"]
