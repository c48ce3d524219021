"""Error taxonomy for plenarlens.

Every error carries a German message that can be shown to the user as-is.
"""

from __future__ import annotations

from typing import Literal, Optional

ModelErrorKind = Literal["not_found", "overloaded", "context_too_long", "invalid_key", "unknown"]


class PlenarlensError(RuntimeError):
    """Base class for all failures surfaced by plenarlens."""


class NetworkError(PlenarlensError):
    """Neither the direct nor the proxy transport reached the server."""


class ApiError(PlenarlensError):
    """The server was reachable but rejected the request."""

    def __init__(self, status: int, message: Optional[str] = None, *, via_proxy: bool = False) -> None:
        self.status = status
        self.via_proxy = via_proxy
        super().__init__(message or describe_status(status))


class CredentialError(PlenarlensError):
    """An operation needs an API key that is not configured."""


class ModelError(PlenarlensError):
    """The language model API failed."""

    def __init__(self, message: str, *, kind: ModelErrorKind = "unknown") -> None:
        self.kind = kind
        super().__init__(message)


def describe_status(status: int) -> str:
    if status == 401:
        return (
            "Die DIP API hat den Zugriff mit Status 401 verweigert. "
            "Bitte hinterlegen Sie einen gültigen API-Schlüssel in den Einstellungen."
        )
    if status == 403:
        return (
            "Die DIP API hat den Zugriff mit Status 403 verweigert. "
            "Bitte überprüfen Sie den hinterlegten API-Schlüssel und Ihre Berechtigungen."
        )
    if status == 429:
        return "Die DIP API hat das Abruflimit erreicht (Status 429). Bitte warten Sie kurz und versuchen Sie es dann erneut."
    return f"Die DIP API hat die Anfrage mit Status {status} abgelehnt."


def classify_model_failure(message: str, code: Optional[int] = None) -> ModelErrorKind:
    """Guess the failure category from an error message and status code."""

    lowered = (message or "").lower()
    if code == 404 or "not found" in lowered or "not_found" in lowered:
        return "not_found"
    if code == 503 or "overloaded" in lowered or "unavailable" in lowered:
        return "overloaded"
    if "too long" in lowered or "token count" in lowered or "exceeds the maximum" in lowered:
        return "context_too_long"
    if code in (401, 403) or "api key not valid" in lowered or "api_key_invalid" in lowered:
        return "invalid_key"
    return "unknown"


__all__ = [
    "ApiError",
    "CredentialError",
    "ModelError",
    "ModelErrorKind",
    "NetworkError",
    "PlenarlensError",
    "classify_model_failure",
    "describe_status",
]
