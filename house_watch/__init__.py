"""House watch package exposing the listing ingestion pipeline."""
from .config import WatchSettings, create_settings, load_settings
from .errors import (
    ConfigError,
    ExtractionFailure,
    HouseWatchError,
    NotificationDeliveryError,
    StateStoreError,
)
from .notifier import TelegramNotifier
from .scraper import Extractor
from .sources import PlaywrightSession
from .workflow import GroupResult, WatchPipeline, WatchResult

__all__ = [
    "ConfigError",
    "ExtractionFailure",
    "Extractor",
    "GroupResult",
    "HouseWatchError",
    "NotificationDeliveryError",
    "PlaywrightSession",
    "StateStoreError",
    "TelegramNotifier",
    "WatchPipeline",
    "WatchResult",
    "WatchSettings",
    "create_settings",
    "load_settings",
]
