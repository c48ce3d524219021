"""Integration with the Gemini 3 flash and pro tiers via the official SDK."""
from __future__ import annotations

from typing import Any, Optional
import asyncio
import logging

from google import genai
from google.genai import errors, types

from ..core.errors import CredentialError, ModelError, classify_model_failure
from ..core.types import AnswerSegment, DeepAnalysis, ModelReply, ReasoningSegment, ResponseSegment, TierStatus

LOGGER = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Gemini API Key fehlt. Bitte in den Einstellungen hinterlegen."
SUMMARY_FAILED = "Zusammenfassung konnte nicht erstellt werden (API Fehler)."
SUMMARY_EMPTY = "Keine Zusammenfassung generiert."
ANALYSIS_EMPTY = "Keine Analyse generiert."
MODELS_UNAVAILABLE = (
    "Gemini 3.0 Modelle sind für diese API-Version/Region nicht verfügbar. "
    "Bitte API-Key und Zugriffsrechte prüfen."
)

_PING_PROMPT = 'Sag nur "ok"'

_SUMMARY_PROMPT = "\n".join(
    [
        "Du bist ein spezialisierter Parlaments-Analyst. Erstelle eine prägnante Executive Summary "
        "des folgenden Plenarprotokolls.",
        "",
        "Struktur:",
        "",
        "Top-Themen: Die 3-5 wichtigsten Debattenpunkte.",
        "Beschlüsse: Konkrete Gesetzesverabschiedungen oder Anträge (Ergebnis).",
        "Konfliktlinien: Wer stand gegen wen? (Kurz).",
        "Protokolltext:",
        "{text}",
    ]
)

_ANALYSIS_PROMPT = "\n".join(
    [
        "Führe eine wissenschaftliche Diskursanalyse dieses Protokolls durch.",
        "",
        "Untersuchungsaspekte:",
        "",
        "Rhetorische Strategien: Welche Argumentationsmuster nutzen Regierung vs. Opposition?",
        "Framing: Wie werden Schlüsselbegriffe von verschiedenen Seiten besetzt?",
        "Implizite Signale: Was steht zwischen den Zeilen (Zwischenrufe, Heiterkeit)?",
        "Gehe methodisch vor und belege deine Thesen kurz am Text.",
        "Trenne deinen Denkprozess von der finalen Antwort.",
        "",
        "Protokolltext:",
        "{text}",
    ]
)

_ANALYSIS_SYSTEM_INSTRUCTION = (
    "Du bist ein promovierter Politikwissenschaftler. Du analysierst objektiv, scharfsinnig "
    "und strukturierst deine Ergebnisse akademisch präzise."
)

_CHAT_SYSTEM_INSTRUCTION = "\n".join(
    [
        "Du bist ein forensischer Investigator für Bundestagsprotokolle.",
        "",
        "Regeln:",
        "1. Du hast den VOLLSTÄNDIGEN Text des Protokolls im Kontext. Nutze ihn primär.",
        "2. Wenn der Nutzer nach Fakten fragt, die nicht im Text stehen, nutze Google Search.",
        "3. Denke kritisch nach (Thinking Process), bevor du antwortest.",
        "4. Sei präzise, zitiere wenn möglich indirekt Sprecher aus dem Protokoll.",
        "",
        "Protokoll Kontext:",
        "{text}",
    ]
)


def truncate_text(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters and append a visible marker."""

    if len(text) <= limit:
        return text
    formatted_limit = f"{limit:,}".replace(",", ".")
    return f"{text[:limit]}... [Text gekürzt bei {formatted_limit} Zeichen]"


def parse_reply(response: Any) -> ModelReply:
    """Split a ``GenerateContentResponse`` into answer and reasoning segments."""

    segments: list[ResponseSegment] = []
    candidates = getattr(response, "candidates", None) or ()
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or ():
            text = getattr(part, "text", None)
            if not text:
                continue
            if getattr(part, "thought", None) is True:
                segments.append(ReasoningSegment(text))
            else:
                segments.append(AnswerSegment(text))
    if not any(isinstance(segment, AnswerSegment) for segment in segments):
        fallback = getattr(response, "text", None)
        if fallback:
            segments.append(AnswerSegment(fallback))
    return ModelReply(tuple(segments))


def describe_failure(exc: BaseException) -> str:
    """Return the most readable message available for ``exc``."""

    if isinstance(exc, errors.APIError):
        return exc.message or str(exc)
    return str(exc) or exc.__class__.__name__


def to_model_error(exc: BaseException, prefix: str = "") -> ModelError:
    message = describe_failure(exc)
    code = exc.code if isinstance(exc, errors.APIError) else None
    return ModelError(f"{prefix}{message}", kind=classify_model_failure(message, code))


class GeminiAnalyst:
    """Runs summaries, deep analyses, key checks and chats against Gemini."""

    def __init__(
        self,
        *,
        api_key: str,
        flash_model: str = "gemini-3.0-flash",
        pro_model: str = "gemini-3.0-pro",
        base_url: Optional[str] = None,
        api_version: str = "v1",
        timeout: float = 300.0,
        max_input_chars: int = 1_500_000,
        thinking_budget: int = 2048,
        client: Any = None,
    ) -> None:
        if not api_key:
            raise CredentialError(MISSING_KEY_MESSAGE)
        self._flash_model = flash_model
        self._pro_model = pro_model
        self._max_input_chars = max_input_chars
        self._thinking_budget = thinking_budget
        if client is None:
            http_options = self._build_http_options(base_url, api_version, timeout)
            client = genai.Client(api_key=api_key, http_options=http_options)
        self._client = client

    @staticmethod
    def _build_http_options(base_url: Optional[str], api_version: str, timeout: float) -> types.HttpOptions:
        http_options_kwargs: dict[str, object] = {"api_version": api_version}
        if base_url:
            http_options_kwargs["base_url"] = base_url.rstrip("/")
        # HttpOptions expects milliseconds
        timeout_ms = int(timeout * 1000)
        if timeout_ms > 0:
            http_options_kwargs["timeout"] = timeout_ms
        return types.HttpOptions(**http_options_kwargs)

    def truncate(self, text: str) -> str:
        return truncate_text(text, self._max_input_chars)

    # --- summary --------------------------------------------------------
    async def generate_summary(self, text: str) -> str:
        """Request the fast summary. Failures raise :class:`ModelError`."""

        prompt = _SUMMARY_PROMPT.format(text=self.truncate(text))
        try:
            response = await self._client.aio.models.generate_content(
                model=self._flash_model,
                contents=prompt,
                config=types.GenerateContentConfig(temperature=0.3),
            )
        except Exception as exc:
            raise to_model_error(exc) from exc
        return parse_reply(response).answer or SUMMARY_EMPTY

    async def summarize(self, text: str) -> str:
        """Like :meth:`generate_summary` but returns a placeholder on failure."""

        try:
            return await self.generate_summary(text)
        except ModelError as exc:
            LOGGER.warning("Gemini summary failed: %s", exc)
            return SUMMARY_FAILED

    # --- deep analysis --------------------------------------------------
    async def deep_analysis(self, text: str) -> DeepAnalysis:
        prompt = _ANALYSIS_PROMPT.format(text=self.truncate(text))
        config = types.GenerateContentConfig(
            system_instruction=_ANALYSIS_SYSTEM_INSTRUCTION,
            thinking_config=self._thinking_config(),
            temperature=0.2,
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self._pro_model,
                contents=prompt,
                config=config,
            )
        except Exception as exc:
            LOGGER.error("Gemini analysis failed: %s", exc)
            raise to_model_error(exc, prefix="Fehler bei der Tiefenanalyse: ") from exc
        reply = parse_reply(response)
        return DeepAnalysis(text=reply.answer or ANALYSIS_EMPTY, thoughts=reply.thoughts)

    # --- verification ---------------------------------------------------
    async def verify(self) -> TierStatus:
        """Ping both tiers concurrently and report which ones answered."""

        results = await asyncio.gather(
            self._ping(self._flash_model),
            self._ping(self._pro_model),
            return_exceptions=True,
        )
        flags: list[bool] = []
        message: Optional[str] = None
        for model, result in zip((self._flash_model, self._pro_model), results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                LOGGER.warning("Gemini check for %s failed: %s", model, result)
                flags.append(False)
                message = self._verification_message(result)
            else:
                flags.append(result)
        return TierStatus(flash=flags[0], pro=flags[1], message=message)

    async def _ping(self, model: str) -> bool:
        response = await self._client.aio.models.generate_content(model=model, contents=_PING_PROMPT)
        return bool(parse_reply(response).answer)

    @staticmethod
    def _verification_message(exc: BaseException) -> str:
        message = describe_failure(exc)
        if "not found" in message.lower() or "NOT_FOUND" in message:
            return MODELS_UNAVAILABLE
        return message

    # --- chat -----------------------------------------------------------
    def create_chat(self, text: str) -> Any:
        """Open a pro-tier chat whose system instruction carries ``text``."""

        config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
            thinking_config=self._thinking_config(),
            system_instruction=_CHAT_SYSTEM_INSTRUCTION.format(text=self.truncate(text)),
            temperature=0.4,
        )
        return self._client.aio.chats.create(model=self._pro_model, config=config)

    def _thinking_config(self) -> types.ThinkingConfig:
        return types.ThinkingConfig(include_thoughts=True, thinking_budget=self._thinking_budget)


__all__ = [
    "ANALYSIS_EMPTY",
    "GeminiAnalyst",
    "MISSING_KEY_MESSAGE",
    "MODELS_UNAVAILABLE",
    "SUMMARY_EMPTY",
    "SUMMARY_FAILED",
    "describe_failure",
    "parse_reply",
    "to_model_error",
    "truncate_text",
]
