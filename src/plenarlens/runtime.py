"""Application level helpers for assembling the workspace."""
from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging

from .clients import DIPClient, ResilientTransport
from .config import AppConfig, load_credentials
from .core.types import ApiKeys
from .workspace import AnalysisWorkspace

LOGGER = logging.getLogger(__name__)


def create_workspace(
    config: AppConfig,
    *,
    credentials: Optional[ApiKeys] = None,
    credentials_path: Optional[Path] = None,
    dip_client: Optional[DIPClient] = None,
) -> AnalysisWorkspace:
    """Build a workspace from ``config`` and the persisted credentials."""

    owns_client = dip_client is None
    client = dip_client or DIPClient(
        config.dip.base_url,
        transport=ResilientTransport(proxy_url=config.dip.proxy_url, timeout=config.dip.timeout),
        page_size=config.dip.page_size,
    )
    keys = credentials or load_credentials(config, credentials_path)
    if not keys.bundestag_key:
        LOGGER.warning("DIP API key missing - searches will be rejected")
    return AnalysisWorkspace(config, dip_client=client, credentials=keys, owns_client=owns_client)


__all__ = ["create_workspace"]
