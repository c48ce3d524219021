"""Multi-turn chat about a single protocol."""
from __future__ import annotations

from typing import Any, Callable, List, Optional
import asyncio
import logging
import time

from ..core.types import ConversationTurn, Document, SessionState, TurnRole
from .gemini import GeminiAnalyst, describe_failure, parse_reply

LOGGER = logging.getLogger(__name__)

MISSING_KEY_TURN = "Fehler: Bitte geben Sie zuerst einen gültigen Gemini API Key in den Einstellungen ein."
EMPTY_REPLY = "Keine Antwort erhalten."
NO_TEXT_MESSAGE = "Das Protokoll enthält keinen Text."

_FAILURE_TEMPLATE = (
    "⚠️ **Verarbeitungsfehler**: {message}\n\n"
    "Mögliche Ursachen:\n"
    "- API Key ungültig\n"
    "- Modell überlastet (503)\n"
    "- Text zu lang für das Modell\n\n"
    "Bitte versuchen Sie es erneut."
)

AnalystFactory = Callable[[str], GeminiAnalyst]


class ConversationSession:
    """Chat bound to one document.

    The underlying chat handle is created on the first user turn and seeded
    with the (truncated) document text. Turns are submitted one at a time;
    a turn submitted while another awaits its reply waits for the lock, and
    so do the turns answering a missing key or an empty document.
    Failures never escape :meth:`send`: they are appended as assistant turns.
    """

    def __init__(
        self,
        document: Document,
        *,
        analyst_factory: AnalystFactory,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._document = document
        self._analyst_factory = analyst_factory
        self._clock = clock
        self._chat: Any = None
        self._turns: List[ConversationTurn] = []
        self._state = SessionState.UNINITIALIZED
        self._lock = asyncio.Lock()
        self._last_timestamp = 0.0
        self._closed = False

    @property
    def document_id(self) -> str:
        return self._document.identifier

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    @property
    def has_chat(self) -> bool:
        return self._chat is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Mark the session as discarded; late replies are dropped."""

        self._closed = True
        self._chat = None

    async def send(self, message: str, *, api_key: Optional[str]) -> Optional[ConversationTurn]:
        """Submit a user turn and return the assistant turn appended for it."""

        if not message.strip():
            return None

        async with self._lock:
            if self._closed:
                return None
            if not api_key:
                return self._append(TurnRole.ASSISTANT, MISSING_KEY_TURN)
            if not self._document.text:
                return self._append(TurnRole.ASSISTANT, NO_TEXT_MESSAGE)
            self._append(TurnRole.USER, message)
            self._state = SessionState.AWAITING_RESPONSE
            try:
                if self._chat is None:
                    self._chat = self._analyst_factory(api_key).create_chat(self._document.text)
                    LOGGER.info("Opened chat for %s", self._document.identifier)
                response = await self._chat.send_message(message)
            except Exception as exc:
                LOGGER.warning("Chat turn for %s failed: %s", self._document.identifier, exc)
                if self._closed:
                    return None
                self._state = SessionState.ERROR_RECOVERED
                return self._append(TurnRole.ASSISTANT, _FAILURE_TEMPLATE.format(message=describe_failure(exc)))

            if self._closed:
                LOGGER.debug("Dropping reply for discarded session %s", self._document.identifier)
                return None
            reply = parse_reply(response)
            self._state = SessionState.ACTIVE_IDLE
            return self._append(TurnRole.ASSISTANT, reply.answer or EMPTY_REPLY, thoughts=reply.thoughts)

    def _append(self, role: TurnRole, text: str, *, thoughts: Optional[str] = None) -> ConversationTurn:
        timestamp = max(self._clock(), self._last_timestamp)
        self._last_timestamp = timestamp
        turn = ConversationTurn(role=role, text=text, timestamp=timestamp, thoughts=thoughts)
        self._turns.append(turn)
        return turn


__all__ = ["ConversationSession", "EMPTY_REPLY", "MISSING_KEY_TURN", "NO_TEXT_MESSAGE"]
