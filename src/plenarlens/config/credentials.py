"""Persistence of the two API keys between runs."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from ..core.types import ApiKeys
from .settings import AppConfig

LOGGER = logging.getLogger(__name__)

BUNDESTAG_KEY = "bundestag_api_key"
GEMINI_KEY = "gemini_api_key"

_DEFAULT_CREDENTIALS_PATH = Path.home() / ".config" / "plenarlens" / "credentials.json"


def _read_store(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        LOGGER.warning("Ignoring malformed credential store at %s", path)
        return {}
    return {key: str(value) for key, value in data.items() if isinstance(value, str)}


def load_credentials(config: AppConfig, path: Optional[Path] = None) -> ApiKeys:
    """Return the stored keys, falling back to configured and environment values."""

    stored = _read_store(path or _DEFAULT_CREDENTIALS_PATH)
    gemini_fallback = config.gemini.api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY") or ""
    return ApiKeys(
        bundestag_key=stored.get(BUNDESTAG_KEY) or config.dip.api_key or "",
        gemini_key=stored.get(GEMINI_KEY) or gemini_fallback,
    )


def save_credentials(keys: ApiKeys, path: Optional[Path] = None) -> Path:
    """Write both keys under their fixed storage names and return the path."""

    target = path or _DEFAULT_CREDENTIALS_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    data = {BUNDESTAG_KEY: keys.bundestag_key, GEMINI_KEY: keys.gemini_key}
    with target.open("w", encoding="utf8") as fh:
        json.dump(data, fh, ensure_ascii=False, indent=2, sort_keys=True)
        fh.write("\n")
    return target


__all__ = ["BUNDESTAG_KEY", "GEMINI_KEY", "load_credentials", "save_credentials"]
