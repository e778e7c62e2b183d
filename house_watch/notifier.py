"""Telegram delivery of listing batches."""
from __future__ import annotations

import logging
from typing import Protocol, Sequence

import requests

from .errors import NotificationDeliveryError
from .models import Listing
from .reporter import format_message

LOGGER = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"


class Notifier(Protocol):
    def send_listings(self, chat_id: str, listings: Sequence[Listing]) -> None:
        ...


class TelegramNotifier:
    """Send one Telegram message per batch through the Bot HTTP API."""

    def __init__(self, token: str, timeout: float = 10.0) -> None:
        self.token = token
        self.timeout = timeout

    def send_message(self, chat_id: str, text: str) -> None:
        url = f"{TELEGRAM_API_URL}/bot{self.token}/sendMessage"
        try:
            response = requests.post(
                url, json={"chat_id": chat_id, "text": text}, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise NotificationDeliveryError(chat_id, str(exc).replace(self.token, "***")) from exc

    def send_listings(self, chat_id: str, listings: Sequence[Listing]) -> None:
        if not listings:
            LOGGER.info("No data to send to %s", chat_id)
            return
        self.send_message(chat_id, format_message(listings))
        LOGGER.info("Sent %d listing(s) to %s", len(listings), chat_id)
