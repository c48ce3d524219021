"""Async client for the plenary protocol text endpoints of the DIP API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional
import logging

from ..core.errors import PlenarlensError
from ..core.types import Document, DocumentKind, RetrievalPage, RetrievalQuery, SourceLocator
from .transport import ResilientTransport

LOGGER = logging.getLogger(__name__)

VERIFY_LEGISLATIVE_PERIOD = 21


class DIPClientError(PlenarlensError):
    """Raised when the DIP API returns data that cannot be interpreted."""


class DIPClient:
    """Query plenary protocol texts from DIP."""

    def __init__(
        self,
        base_url: str,
        *,
        transport: ResilientTransport,
        page_size: int = 20,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._page_size = page_size

    # --- public API -----------------------------------------------------
    async def search(self, api_key: str, query: RetrievalQuery) -> RetrievalPage:
        """Fetch one page of protocol texts matching ``query``."""

        data = await self._transport.fetch(
            f"{self._base_url}/plenarprotokoll-text",
            api_key,
            params=self._search_params(query),
        )
        if not isinstance(data, dict) or not isinstance(data.get("documents"), list):
            raise DIPClientError("Unerwartetes Antwortformat von der API.")
        documents = tuple(self._parse_document(entry) for entry in data["documents"])
        cursor = data.get("cursor")
        LOGGER.debug("Fetched %s documents (cursor=%s)", len(documents), cursor)
        return RetrievalPage(
            total=_parse_int(data.get("numFound")) or 0,
            cursor=str(cursor) if cursor else None,
            documents=documents,
        )

    async def fetch_document(self, api_key: str, identifier: str) -> Document:
        """Download a single protocol including the full text."""

        data = await self._transport.fetch(
            f"{self._base_url}/plenarprotokoll-text/{identifier}",
            api_key,
            params={"format": "json"},
        )
        if not isinstance(data, dict):
            raise DIPClientError("Unerwartetes Antwortformat von der API.")
        return self._parse_document(data)

    async def verify(self, api_key: str) -> bool:
        """Check that ``api_key`` is accepted. Failures propagate as errors."""

        await self._transport.fetch(
            f"{self._base_url}/plenarprotokoll-text",
            api_key,
            params={
                "f.wahlperiode": str(VERIFY_LEGISLATIVE_PERIOD),
                "limit": "1",
                "format": "json",
            },
        )
        return True

    async def aclose(self) -> None:
        """Close the underlying transport."""

        await self._transport.aclose()

    # --- helpers --------------------------------------------------------
    def _search_params(self, query: RetrievalQuery) -> Dict[str, str]:
        params: Dict[str, str] = {
            "f.wahlperiode": str(query.legislative_period),
            "format": "json",
            "limit": str(self._page_size),
        }
        if query.start_date:
            params["f.datum.start"] = query.start_date
        if query.end_date:
            params["f.datum.end"] = query.end_date
        if query.title_filter:
            params["f.titel"] = query.title_filter
        if query.cursor:
            params["cursor"] = query.cursor
        return params

    @staticmethod
    def _parse_document(data: Dict[str, Any]) -> Document:
        raw_identifier = data.get("id")
        if not raw_identifier:
            raise DIPClientError("Protokoll ohne Kennung in der API-Antwort.")
        identifier = str(raw_identifier)

        fundstelle = data.get("fundstelle") or {}
        source = None
        if fundstelle.get("pdf_url") or fundstelle.get("xml_url"):
            source = SourceLocator(pdf_url=fundstelle.get("pdf_url"), xml_url=fundstelle.get("xml_url"))

        text = data.get("text") or ""
        number = data.get("dokumentnummer")
        session_number = None
        if number and "/" in str(number):
            session_number = _parse_int(str(number).rsplit("/", 1)[-1])

        return Document(
            identifier=identifier,
            kind=DocumentKind.from_raw(data.get("dokumentart")),
            document_number=str(number) if number else None,
            date=_parse_date(data.get("datum")),
            title=data.get("titel"),
            text=text,
            publisher=data.get("herausgeber"),
            legislative_period=_parse_int(data.get("wahlperiode")),
            source=source,
            metadata={
                "typ": data.get("typ"),
                "sitzungsnummer": session_number,
                "zeichen": len(text),
            },
        )


def _parse_int(candidate: Any) -> Optional[int]:
    if candidate is None:
        return None
    try:
        return int(candidate)
    except (TypeError, ValueError):
        return None


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        try:
            return datetime.strptime(value, "%d.%m.%Y").date()
        except ValueError:
            return None


__all__ = ["DIPClient", "DIPClientError"]
