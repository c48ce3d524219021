"""Application configuration helpers for plenarlens."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
import types
from typing import Any, Dict, Optional, Type, TypeVar, Union, get_args, get_origin, get_type_hints


_DEFAULT_CONFIG_LOCATIONS = (
    Path("plenarlens.json"),
    Path.home() / ".config" / "plenarlens" / "config.json",
)


@dataclass(slots=True)
class DIPConfig:
    """Configuration for the Bundestag DIP API."""

    base_url: str = "https://search.dip.bundestag.de/api/v1"
    proxy_url: str = "https://corsproxy.io/?"
    api_key: Optional[str] = None
    timeout: float = 30.0
    page_size: int = 20


@dataclass(slots=True)
class GeminiConfig:
    """Configuration for the two Gemini tiers."""

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    api_version: str = "v1"
    flash_model: str = "gemini-3.0-flash"
    pro_model: str = "gemini-3.0-pro"
    timeout: float = 300.0
    max_input_chars: int = 1_500_000
    thinking_budget: int = 2048


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(slots=True)
class AppConfig:
    """High level application configuration."""

    dip: DIPConfig
    gemini: GeminiConfig
    logging: LoggingConfig


def _load_from_env(prefix: str) -> Dict[str, Any]:
    """Load configuration entries for ``prefix`` from the environment."""

    data: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if key.startswith(prefix):
            normalized_key = key.removeprefix(prefix)
            data[normalized_key.lower()] = value
    return data


def _merge_dict(target: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    merged = target.copy()
    merged.update({k: v for k, v in updates.items() if v is not None})
    return merged


def _load_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf8") as fh:
        return json.load(fh)


T = TypeVar("T")


def _coerce_value(value: Any, annotation: Any) -> Any:
    """Best-effort conversion of ``value`` to match ``annotation``."""

    if value is None:
        return None

    origin = get_origin(annotation)
    if origin in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]  # noqa: E721 - allow Optional
        if not args:
            return None
        last_error: Exception | None = None
        for candidate in args:
            try:
                return _coerce_value(value, candidate)
            except (TypeError, ValueError) as exc:
                last_error = exc
        raise ValueError(f"Cannot convert {value!r} to {annotation}") from last_error

    target_type = origin or annotation

    if target_type in {Any, object}:
        return value

    if target_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in {"true", "1", "yes", "y", "on"}:
                return True
            if normalized in {"false", "0", "no", "n", "off"}:
                return False
        if isinstance(value, (int, float)):
            return bool(value)
        raise ValueError(f"Cannot convert {value!r} to bool")

    if target_type is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            return int(float(value.replace("_", "")))
        if isinstance(value, float):
            return int(value)
        raise ValueError(f"Cannot convert {value!r} to int")

    if target_type is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            return float(value)
        raise ValueError(f"Cannot convert {value!r} to float")

    if target_type is str:
        if isinstance(value, str):
            return value
        return str(value)

    return value


def _dataclass_from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
    """Create dataclass ``cls`` while coercing ``data`` to the proper types."""

    kwargs: Dict[str, Any] = {}
    type_hints = get_type_hints(cls)
    for field in fields(cls):
        if field.name not in data:
            continue
        try:
            annotation = type_hints.get(field.name, field.type)
            kwargs[field.name] = _coerce_value(data[field.name], annotation)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Invalid value for {cls.__name__}.{field.name}: {data[field.name]!r}"
            ) from exc
    return cls(**kwargs)


def resolve_config_path(explicit_path: Optional[Path] = None) -> Path:
    """Return the effective configuration file path.

    If ``explicit_path`` is provided it is returned verbatim. Otherwise the
    first existing default location wins; if none exists the XDG-style
    location (``~/.config/plenarlens/config.json``) is returned.
    """

    if explicit_path:
        return explicit_path

    for candidate in _DEFAULT_CONFIG_LOCATIONS:
        if candidate.exists():
            return candidate

    return _DEFAULT_CONFIG_LOCATIONS[-1]


def load_config(explicit_path: Optional[Path] = None) -> AppConfig:
    """Create the application configuration.

    Defaults, an optional JSON file and ``PLENARLENS_*`` environment variables
    are merged in that order. Variable names follow the pattern
    ``PLENARLENS_SECTION_FIELD`` (e.g. ``PLENARLENS_GEMINI_PRO_MODEL``).
    """

    base = {
        "dip": asdict(DIPConfig()),
        "gemini": asdict(GeminiConfig()),
        "logging": asdict(LoggingConfig()),
    }

    file_data: Dict[str, Any] = {}
    if explicit_path:
        file_data = _load_config_file(explicit_path)
    else:
        for candidate in _DEFAULT_CONFIG_LOCATIONS:
            file_data = _load_config_file(candidate)
            if file_data:
                break

    dip_data = _merge_dict(base["dip"], file_data.get("dip", {}))
    gemini_data = _merge_dict(base["gemini"], file_data.get("gemini", {}))
    logging_data = _merge_dict(base["logging"], file_data.get("logging", {}))

    dip_data = _merge_dict(dip_data, _load_from_env("PLENARLENS_DIP_"))
    gemini_data = _merge_dict(gemini_data, _load_from_env("PLENARLENS_GEMINI_"))
    logging_data = _merge_dict(logging_data, _load_from_env("PLENARLENS_LOGGING_"))

    return AppConfig(
        dip=_dataclass_from_dict(DIPConfig, dip_data),
        gemini=_dataclass_from_dict(GeminiConfig, gemini_data),
        logging=_dataclass_from_dict(LoggingConfig, logging_data),
    )


def save_config(config: AppConfig, path: Optional[Path] = None) -> Path:
    """Persist ``config`` as JSON and return the target path."""

    target = resolve_config_path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "dip": asdict(config.dip),
        "gemini": asdict(config.gemini),
        "logging": asdict(config.logging),
    }
    with target.open("w", encoding="utf8") as fh:
        json.dump(data, fh, ensure_ascii=False, indent=2, sort_keys=True)
        fh.write("\n")
    return target


__all__ = [
    "AppConfig",
    "DIPConfig",
    "GeminiConfig",
    "LoggingConfig",
    "load_config",
    "resolve_config_path",
    "save_config",
]
