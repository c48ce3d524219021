"""HTTP transport with a proxy fallback for the DIP API."""

from __future__ import annotations

from typing import Any, Mapping, Optional
from urllib.parse import quote
import logging

import httpx

from ..core.errors import ApiError, NetworkError

LOGGER = logging.getLogger(__name__)

_HEADERS = {"Accept": "application/json"}

_UNREACHABLE_MESSAGE = (
    "Verbindung zum Bundestag konnte nicht hergestellt werden. "
    "Bitte prüfen Sie Ihre Internetverbindung."
)


class ResilientTransport:
    """Issue GET requests directly and retry once through a forwarding proxy.

    The API key travels as the ``apikey`` query parameter so that the proxy
    forwards it unchanged. Only transport failures trigger the proxy attempt;
    an HTTP error status from a reachable server raises :class:`ApiError`
    immediately.
    """

    def __init__(
        self,
        *,
        proxy_url: str = "https://corsproxy.io/?",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._proxy_url = proxy_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def fetch(self, url: str, api_key: str, params: Optional[Mapping[str, str]] = None) -> Any:
        """Return the decoded JSON body for ``url``."""

        target = httpx.URL(url)
        if params:
            target = target.copy_merge_params(dict(params))
        target = target.copy_add_param("apikey", api_key)

        try:
            response = await self._client.get(target, headers=_HEADERS)
        except httpx.TransportError as exc:
            LOGGER.warning("Direct request to %s failed (%s), switching to proxy", target.host, exc)
        else:
            return self._decode(response, via_proxy=False)

        proxy_target = f"{self._proxy_url}{quote(str(target), safe='')}"
        try:
            response = await self._client.get(proxy_target, headers=_HEADERS)
        except httpx.TransportError as exc:
            LOGGER.error("Proxy request for %s failed: %s", target.host, exc)
            raise NetworkError(_UNREACHABLE_MESSAGE) from exc
        return self._decode(response, via_proxy=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ResilientTransport":  # pragma: no cover - trivial
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        await self.aclose()

    @staticmethod
    def _decode(response: httpx.Response, *, via_proxy: bool) -> Any:
        status = response.status_code
        if not response.is_success:
            LOGGER.warning("DIP API returned status %s%s", status, " via proxy" if via_proxy else "")
            raise ApiError(status, via_proxy=via_proxy)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                status,
                "Die DIP API hat keine gültige JSON-Antwort geliefert.",
                via_proxy=via_proxy,
            ) from exc


__all__ = ["ResilientTransport"]
