"""Process-wide browsing state: credentials, results, selection, cache and chat."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Tuple, TypeVar
import asyncio
import logging

from .analysis import AnalysisCache, ConversationSession, GeminiAnalyst
from .analysis.conversation import NO_TEXT_MESSAGE
from .analysis.gemini import SUMMARY_FAILED
from .clients import DIPClient
from .config import AppConfig
from .core.errors import CredentialError, PlenarlensError
from .core.types import (
    AnalysisEntry,
    ApiKeys,
    ConversationTurn,
    DeepAnalysis,
    Document,
    RetrievalQuery,
    TierStatus,
    VerificationResult,
)
from .retrieval import DocumentRetriever, SearchStatus

LOGGER = logging.getLogger(__name__)

NO_SELECTION_MESSAGE = "Bitte zuerst ein Protokoll auswählen."

T = TypeVar("T")


class OperationKind(str, Enum):
    SUMMARY = "summary"
    DEEP_ANALYSIS = "deep_analysis"


class AnalysisWorkspace:
    """Single browsing session over the DIP API and Gemini.

    Selecting a different document increments a selection token. Results of
    operations started under an older token are discarded instead of being
    cached or returned. Concurrent requests for the same document and
    operation kind share one in-flight task.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        dip_client: DIPClient,
        credentials: Optional[ApiKeys] = None,
        analyst_factory: Optional[Callable[[str], GeminiAnalyst]] = None,
        owns_client: bool = True,
    ) -> None:
        self._config = config
        self._dip_client = dip_client
        self._owns_client = owns_client
        self._credentials = credentials or ApiKeys()
        self._analyst_factory = analyst_factory or self._build_analyst
        self._analysts: Dict[str, GeminiAnalyst] = {}
        self.cache = AnalysisCache()
        self.retriever = DocumentRetriever(dip_client)
        self._selected: Optional[Document] = None
        self._selection_token = 0
        self._session: Optional[ConversationSession] = None
        self._in_flight: Dict[Tuple[str, OperationKind], asyncio.Future] = {}

    # --- credentials ----------------------------------------------------
    @property
    def credentials(self) -> ApiKeys:
        return self._credentials

    def update_credentials(self, keys: ApiKeys) -> None:
        self._credentials = keys

    def _build_analyst(self, api_key: str) -> GeminiAnalyst:
        analyst = self._analysts.get(api_key)
        if analyst is None:
            gemini = self._config.gemini
            analyst = GeminiAnalyst(
                api_key=api_key,
                flash_model=gemini.flash_model,
                pro_model=gemini.pro_model,
                base_url=gemini.base_url,
                api_version=gemini.api_version,
                timeout=gemini.timeout,
                max_input_chars=gemini.max_input_chars,
                thinking_budget=gemini.thinking_budget,
            )
            self._analysts[api_key] = analyst
        return analyst

    def _analyst(self) -> GeminiAnalyst:
        return self._analyst_factory(self._credentials.gemini_key)

    # --- search ---------------------------------------------------------
    async def search(self, query: RetrievalQuery) -> SearchStatus:
        return await self.retriever.fresh_search(self._credentials.bundestag_key, query)

    async def load_more(self) -> SearchStatus:
        return await self.retriever.load_more(self._credentials.bundestag_key)

    async def open_document(self, identifier: str) -> Document:
        """Select a held document, fetching it from DIP when unknown."""

        document = self.retriever.find(identifier)
        if document is None:
            document = await self._dip_client.fetch_document(self._credentials.bundestag_key, identifier)
        self.select(document)
        return document

    # --- selection ------------------------------------------------------
    @property
    def selected(self) -> Optional[Document]:
        return self._selected

    @property
    def session(self) -> Optional[ConversationSession]:
        return self._session

    def select(self, document: Optional[Document]) -> None:
        previous = self._selected.identifier if self._selected else None
        current = document.identifier if document else None
        self._selected = document
        if previous == current:
            return
        self._selection_token += 1
        if self._session is not None:
            LOGGER.debug("Discarding chat for %s", self._session.document_id)
            self._session.close()
            self._session = None

    def _require_selection(self) -> Tuple[Document, int]:
        if self._selected is None:
            raise PlenarlensError(NO_SELECTION_MESSAGE)
        return self._selected, self._selection_token

    def _is_current(self, token: int) -> bool:
        return token == self._selection_token

    def entry(self) -> Optional[AnalysisEntry]:
        if self._selected is None:
            return None
        return self.cache.get(self._selected.identifier)

    # --- analysis -------------------------------------------------------
    async def summarize(self) -> Optional[str]:
        """Return the summary of the selected document, computing it once.

        Failures yield a placeholder text and leave the cache untouched.
        ``None`` means the selection changed while the request was running.
        """

        document, token = self._require_selection()
        cached = self.cache.get(document.identifier)
        if cached and cached.summary is not None:
            return cached.summary
        if not document.text:
            return NO_TEXT_MESSAGE
        try:
            summary = await self._guarded(
                document.identifier,
                OperationKind.SUMMARY,
                lambda: self._analyst().summarize(document.text),
            )
        except CredentialError as exc:
            return str(exc)
        if not self._is_current(token):
            LOGGER.info("Discarding summary for %s, selection changed", document.identifier)
            return None
        if summary == SUMMARY_FAILED:
            return summary
        self.cache.merge(document.identifier, AnalysisEntry(summary=summary))
        return summary

    async def deep_analysis(self) -> Optional[DeepAnalysis]:
        """Return the deep analysis of the selected document.

        Errors propagate to the caller and are never cached.
        """

        document, token = self._require_selection()
        cached = self.cache.get(document.identifier)
        if cached and cached.deep_analysis is not None:
            return cached.deep_analysis
        if not document.text:
            raise PlenarlensError(NO_TEXT_MESSAGE)
        analysis = await self._guarded(
            document.identifier,
            OperationKind.DEEP_ANALYSIS,
            lambda: self._analyst().deep_analysis(document.text),
        )
        if not self._is_current(token):
            LOGGER.info("Discarding analysis for %s, selection changed", document.identifier)
            return None
        self.cache.merge(document.identifier, AnalysisEntry(deep_analysis=analysis))
        return analysis

    async def _guarded(self, identifier: str, kind: OperationKind, factory: Callable[[], Awaitable[T]]) -> T:
        key = (identifier, kind)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._in_flight.pop(key, None))
        else:
            LOGGER.debug("Joining in-flight %s for %s", kind.value, identifier)
        return await asyncio.shield(task)

    # --- conversation ---------------------------------------------------
    async def chat(self, message: str) -> Optional[ConversationTurn]:
        """Send ``message`` to the chat of the selected document."""

        document, token = self._require_selection()
        if self._session is None or self._session.document_id != document.identifier:
            self._session = ConversationSession(document, analyst_factory=self._analyst_factory)
        session = self._session
        turn = await session.send(message, api_key=self._credentials.gemini_key or None)
        if not self._is_current(token):
            return None
        return turn

    # --- verification ---------------------------------------------------
    async def verify(self) -> VerificationResult:
        """Check the document API and both Gemini tiers concurrently."""

        bundestag, tiers = await asyncio.gather(self._verify_dip(), self._verify_gemini())
        return VerificationResult(
            bundestag=bundestag,
            flash=tiers.flash,
            pro=tiers.pro,
            message=tiers.message,
            timestamp=datetime.now(),
        )

    async def _verify_dip(self) -> bool:
        try:
            return await self._dip_client.verify(self._credentials.bundestag_key)
        except PlenarlensError as exc:
            LOGGER.warning("DIP key verification failed: %s", exc)
            return False

    async def _verify_gemini(self) -> TierStatus:
        try:
            return await self._analyst().verify()
        except CredentialError as exc:
            return TierStatus(flash=False, pro=False, message=str(exc))
        except Exception as exc:
            LOGGER.warning("Gemini key verification failed: %s", exc)
            return TierStatus(flash=False, pro=False, message=str(exc))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._dip_client.aclose()


__all__ = ["AnalysisWorkspace", "NO_SELECTION_MESSAGE", "NO_TEXT_MESSAGE", "OperationKind"]
