"""Configuration helpers for plenarlens."""
from __future__ import annotations

from .credentials import load_credentials, save_credentials
from .settings import (
    AppConfig,
    DIPConfig,
    GeminiConfig,
    LoggingConfig,
    load_config,
    resolve_config_path,
    save_config,
)

__all__ = [
    "AppConfig",
    "DIPConfig",
    "GeminiConfig",
    "LoggingConfig",
    "load_config",
    "load_credentials",
    "resolve_config_path",
    "save_config",
    "save_credentials",
]
