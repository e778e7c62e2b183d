"""Configuration helpers for the house watch pipeline."""
from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_CHUNK_SIZE = 1
DEFAULT_UF_RATE = 38000
DEFAULT_STORE_PATH = "dataStore.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class WatchSettings:
    """Canonical configuration used by the watch workflow."""

    telegram_api_key: Optional[str] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    uf_rate: int = DEFAULT_UF_RATE
    store_path: str = DEFAULT_STORE_PATH
    headless: bool = True
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        """Return a loggable version of the settings with the token masked."""

        return {
            "telegram_api_key": "***" if self.telegram_api_key else None,
            "chunk_size": self.chunk_size,
            "uf_rate": self.uf_rate,
            "store_path": self.store_path,
            "headless": self.headless,
            "log_level": self.log_level,
        }


def _parse_positive_int(name: str, value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    cleaned = value.strip().replace("_", "")
    try:
        parsed = int(cleaned)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if parsed < 1:
        raise ConfigError(f"{name} must be a positive integer, got {parsed}")
    return parsed


def _parse_bool(name: str, value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean flag, got {value!r}")


def create_settings(environ: Mapping[str, str]) -> WatchSettings:
    """Build settings from an environment-like mapping."""

    token = (environ.get("TELEGRAM_API_KEY") or "").strip() or None
    return WatchSettings(
        telegram_api_key=token,
        chunk_size=_parse_positive_int(
            "HOUSE_WATCH_CHUNK_SIZE", environ.get("HOUSE_WATCH_CHUNK_SIZE"), DEFAULT_CHUNK_SIZE
        ),
        uf_rate=_parse_positive_int(
            "HOUSE_WATCH_UF_RATE", environ.get("HOUSE_WATCH_UF_RATE"), DEFAULT_UF_RATE
        ),
        store_path=(environ.get("HOUSE_WATCH_STORE") or "").strip() or DEFAULT_STORE_PATH,
        headless=_parse_bool("HOUSE_WATCH_HEADLESS", environ.get("HOUSE_WATCH_HEADLESS"), True),
        log_level=(environ.get("LOG_LEVEL") or "INFO").strip().upper(),
    )


def load_settings(environ: Mapping[str, str] | None = None) -> WatchSettings:
    """Load settings from the process environment, reading ``.env`` first."""

    if environ is None:
        load_dotenv()
        environ = os.environ
    return create_settings(environ)
