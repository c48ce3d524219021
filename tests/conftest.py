from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from plenarlens.core.types import Document, DocumentKind


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _response(answer: Optional[str] = None, thoughts: Optional[str] = None) -> SimpleNamespace:
    parts = []
    if thoughts is not None:
        parts.append(SimpleNamespace(text=thoughts, thought=True))
    if answer is not None:
        parts.append(SimpleNamespace(text=answer, thought=None))
    content = SimpleNamespace(parts=parts)
    return SimpleNamespace(candidates=[SimpleNamespace(content=content)], text=answer)


class FakeChat:
    def __init__(self, replies: List[Any]) -> None:
        self._replies = replies
        self.sent: List[str] = []

    async def send_message(self, message: str) -> Any:
        self.sent.append(message)
        await asyncio.sleep(0)
        reply = self._replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeGeminiClient:
    """Stands in for ``genai.Client`` exposing the ``aio`` surface we use."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None, chat_replies: Optional[List[Any]] = None) -> None:
        self.responses = responses or {}
        self.chat_replies = chat_replies if chat_replies is not None else []
        self.calls: List[Dict[str, Any]] = []
        self.chats_created: List[Dict[str, Any]] = []
        self.chat_handles: List[FakeChat] = []
        self.aio = SimpleNamespace(
            models=SimpleNamespace(generate_content=self._generate_content),
            chats=SimpleNamespace(create=self._create_chat),
        )

    async def _generate_content(self, *, model: str, contents: str, config: Any = None) -> Any:
        self.calls.append({"model": model, "contents": contents, "config": config})
        result = self.responses[model]
        if isinstance(result, BaseException):
            raise result
        return result

    def _create_chat(self, *, model: str, config: Any = None) -> FakeChat:
        self.chats_created.append({"model": model, "config": config})
        chat = FakeChat(self.chat_replies)
        self.chat_handles.append(chat)
        return chat


@pytest.fixture
def gemini_response():
    return _response


@pytest.fixture
def fake_gemini():
    return FakeGeminiClient


@pytest.fixture
def make_document():
    def _make(identifier: str = "5706", text: str = "Präsidentin Bärbel Bas: Die Sitzung ist eröffnet.") -> Document:
        return Document(
            identifier=identifier,
            kind=DocumentKind.TRANSCRIPT,
            document_number="21/12",
            date=None,
            title=f"Protokoll {identifier}",
            text=text,
            legislative_period=21,
        )

    return _make
