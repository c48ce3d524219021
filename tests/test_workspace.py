from __future__ import annotations

import asyncio
from typing import List

import pytest
from google.genai import errors

from plenarlens.analysis import GeminiAnalyst
from plenarlens.analysis.conversation import MISSING_KEY_TURN, NO_TEXT_MESSAGE
from plenarlens.analysis.gemini import SUMMARY_FAILED
from plenarlens.config import AppConfig, DIPConfig, GeminiConfig, LoggingConfig
from plenarlens.core.errors import ApiError, ModelError
from plenarlens.core.types import AnalysisEntry, ApiKeys, DeepAnalysis, RetrievalPage, RetrievalQuery, TurnRole
from plenarlens.workspace import AnalysisWorkspace

FLASH = "gemini-3.0-flash"
PRO = "gemini-3.0-pro"


class FakeDIPClient:
    def __init__(self, documents=(), verify_error=None) -> None:
        self._documents = list(documents)
        self._verify_error = verify_error
        self.fetched: List[str] = []

    async def search(self, api_key, query):
        return RetrievalPage(total=len(self._documents), cursor=None, documents=tuple(self._documents))

    async def fetch_document(self, api_key, identifier):
        self.fetched.append(identifier)
        return next(document for document in self._documents if document.identifier == identifier)

    async def verify(self, api_key):
        if self._verify_error is not None:
            raise self._verify_error
        return True

    async def aclose(self):
        pass


def _config() -> AppConfig:
    return AppConfig(dip=DIPConfig(), gemini=GeminiConfig(), logging=LoggingConfig())


def _workspace(client, dip=None, keys=None) -> AnalysisWorkspace:
    return AnalysisWorkspace(
        _config(),
        dip_client=dip or FakeDIPClient(),
        credentials=keys or ApiKeys(bundestag_key="dip", gemini_key="gem"),
        analyst_factory=lambda key: GeminiAnalyst(api_key=key, client=client),
    )


class GatedAnalyst:
    """Analyst whose requests block until the test releases them."""

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.calls = 0

    async def summarize(self, text):
        self.calls += 1
        await self.gate.wait()
        return f"Zusammenfassung von {text}"

    async def deep_analysis(self, text):
        self.calls += 1
        await self.gate.wait()
        return DeepAnalysis(text="Analyse")


@pytest.mark.anyio
async def test_summary_is_computed_once_per_document(make_document, fake_gemini, gemini_response):
    client = fake_gemini(responses={FLASH: gemini_response(answer="Kurz")})
    workspace = _workspace(client)
    workspace.select(make_document("a"))

    assert await workspace.summarize() == "Kurz"
    assert await workspace.summarize() == "Kurz"

    assert len(client.calls) == 1
    assert workspace.cache.get("a") == AnalysisEntry(summary="Kurz")


@pytest.mark.anyio
async def test_summary_failure_returns_placeholder_and_leaves_cache(make_document, fake_gemini):
    client = fake_gemini(responses={FLASH: errors.ServerError(503, {"error": {"message": "overloaded"}})})
    workspace = _workspace(client)
    workspace.select(make_document("a"))

    assert await workspace.summarize() == SUMMARY_FAILED
    assert workspace.cache.get("a") is None


@pytest.mark.anyio
async def test_summary_after_unexpected_sdk_error_is_retried(make_document, fake_gemini, gemini_response):
    client = fake_gemini(responses={FLASH: errors.UnknownApiResponseError("non-json body")})
    workspace = _workspace(client)
    workspace.select(make_document("a"))

    assert await workspace.summarize() == SUMMARY_FAILED
    assert workspace.cache.get("a") is None

    client.responses[FLASH] = gemini_response(answer="Kurz")

    assert await workspace.summarize() == "Kurz"
    assert len(client.calls) == 2


@pytest.mark.anyio
async def test_deep_analysis_is_cached_next_to_summary(make_document, fake_gemini, gemini_response):
    client = fake_gemini(
        responses={FLASH: gemini_response(answer="Kurz"), PRO: gemini_response(answer="Lang", thoughts="Weg")}
    )
    workspace = _workspace(client)
    workspace.select(make_document("a"))

    await workspace.summarize()
    analysis = await workspace.deep_analysis()

    assert analysis == DeepAnalysis(text="Lang", thoughts="Weg")
    assert workspace.entry() == AnalysisEntry(summary="Kurz", deep_analysis=analysis)


@pytest.mark.anyio
async def test_deep_analysis_failure_propagates_without_caching(make_document, fake_gemini):
    client = fake_gemini(responses={PRO: errors.ClientError(404, {"error": {"message": "model not found"}})})
    workspace = _workspace(client)
    workspace.select(make_document("a"))

    with pytest.raises(ModelError):
        await workspace.deep_analysis()
    assert workspace.cache.get("a") is None


@pytest.mark.anyio
async def test_concurrent_requests_share_one_call(make_document):
    analyst = GatedAnalyst()
    workspace = AnalysisWorkspace(_config(), dip_client=FakeDIPClient(), credentials=ApiKeys(gemini_key="gem"),
                                  analyst_factory=lambda key: analyst)
    workspace.select(make_document("a", text="T"))

    pending = asyncio.gather(workspace.summarize(), workspace.summarize())
    await asyncio.sleep(0)
    analyst.gate.set()

    assert await pending == ["Zusammenfassung von T", "Zusammenfassung von T"]
    assert analyst.calls == 1


@pytest.mark.anyio
async def test_result_for_deselected_document_is_discarded(make_document):
    analyst = GatedAnalyst()
    workspace = AnalysisWorkspace(_config(), dip_client=FakeDIPClient(), credentials=ApiKeys(gemini_key="gem"),
                                  analyst_factory=lambda key: analyst)
    workspace.select(make_document("a"))

    pending = asyncio.ensure_future(workspace.deep_analysis())
    await asyncio.sleep(0)
    workspace.select(make_document("b"))
    analyst.gate.set()

    assert await pending is None
    assert workspace.cache.get("a") is None


@pytest.mark.anyio
async def test_chat_without_key_makes_no_request(make_document, fake_gemini):
    client = fake_gemini()
    workspace = _workspace(client, keys=ApiKeys(bundestag_key="dip", gemini_key=""))
    workspace.select(make_document("a"))

    turn = await workspace.chat("Hallo?")

    assert turn.text == MISSING_KEY_TURN
    assert workspace.session.turns == (turn,)
    assert client.chats_created == []


@pytest.mark.anyio
async def test_chat_on_document_without_text_makes_no_request(make_document, fake_gemini):
    client = fake_gemini()
    workspace = _workspace(client)
    workspace.select(make_document("a", text=""))

    turn = await workspace.chat("Worum geht es?")

    assert turn.text == NO_TEXT_MESSAGE
    assert workspace.session.turns == (turn,)
    assert client.chats_created == []


@pytest.mark.anyio
async def test_switching_document_discards_conversation(make_document, fake_gemini, gemini_response):
    client = fake_gemini(chat_replies=[gemini_response(answer="zu a"), gemini_response(answer="zu b")])
    workspace = _workspace(client)
    workspace.select(make_document("a", text="Text A"))
    await workspace.chat("Frage a")
    first_session = workspace.session

    workspace.select(make_document("b", text="Text B"))
    assert workspace.session is None
    assert first_session.closed

    await workspace.chat("Frage b")

    assert [turn.text for turn in workspace.session.turns] == ["Frage b", "zu b"]
    assert len(client.chats_created) == 2
    assert client.chats_created[1]["config"].system_instruction.endswith("Text B")


@pytest.mark.anyio
async def test_reselecting_same_document_keeps_conversation(make_document, fake_gemini, gemini_response):
    client = fake_gemini(chat_replies=[gemini_response(answer="ok")])
    workspace = _workspace(client)
    document = make_document("a")
    workspace.select(document)
    await workspace.chat("Frage")

    workspace.select(document)

    assert [turn.role for turn in workspace.session.turns] == [TurnRole.USER, TurnRole.ASSISTANT]


@pytest.mark.anyio
async def test_verify_reports_services_independently(fake_gemini):
    rejected = errors.ClientError(400, {"error": {"message": "API key not valid."}})
    client = fake_gemini(responses={FLASH: rejected, PRO: rejected})
    workspace = _workspace(client)

    result = await workspace.verify()

    assert result.bundestag is True
    assert (result.flash, result.pro) == (False, False)
    assert result.message
    assert not result.all_ok


@pytest.mark.anyio
async def test_verify_with_rejected_dip_key(fake_gemini, gemini_response):
    client = fake_gemini(responses={FLASH: gemini_response(answer="ok"), PRO: gemini_response(answer="ok")})
    workspace = _workspace(client, dip=FakeDIPClient(verify_error=ApiError(401)))

    result = await workspace.verify()

    assert result.bundestag is False
    assert (result.flash, result.pro, result.message) == (True, True, None)


@pytest.mark.anyio
async def test_verify_without_gemini_key(fake_gemini):
    workspace = _workspace(fake_gemini(), keys=ApiKeys(bundestag_key="dip", gemini_key=""))

    result = await workspace.verify()

    assert (result.flash, result.pro) == (False, False)
    assert "Gemini API Key fehlt" in result.message


@pytest.mark.anyio
async def test_open_document_prefers_held_results(make_document, fake_gemini):
    documents = [make_document("a"), make_document("b")]
    dip = FakeDIPClient(documents)
    workspace = _workspace(fake_gemini(), dip=dip)
    await workspace.search(RetrievalQuery(legislative_period=21))

    opened = await workspace.open_document("b")

    assert opened is documents[1]
    assert workspace.selected is documents[1]
    assert dip.fetched == []


@pytest.mark.anyio
async def test_open_document_fetches_unknown_identifiers(make_document, fake_gemini):
    dip = FakeDIPClient([make_document("z")])
    workspace = _workspace(fake_gemini(), dip=dip)

    opened = await workspace.open_document("z")

    assert opened.identifier == "z"
    assert dip.fetched == ["z"]
