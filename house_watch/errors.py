"""Exception types raised or returned by the watch pipeline."""
from __future__ import annotations

from typing import Optional


class HouseWatchError(Exception):
    """Base class for all house_watch failures."""


class ConfigError(HouseWatchError):
    """Raised when environment configuration is invalid."""


class ExtractionFailure(HouseWatchError):
    """A page could not be loaded or read.

    Extraction failures are recoverable: they are handed back to the caller
    as values and only the affected candidate or search link is skipped.
    """

    def __init__(self, url: str, reason: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
        self.cause = cause


class StateStoreError(HouseWatchError):
    """The persisted state could not be read or written. Always fatal."""


class NotificationDeliveryError(HouseWatchError):
    """A batch could not be delivered to the messaging channel."""

    def __init__(self, chat_id: str, message: str) -> None:
        super().__init__(f"Delivery to {chat_id} failed: {message}")
        self.chat_id = chat_id
