"""Scheduled entry point running one house watch pass over every group."""
from __future__ import annotations

import asyncio
import logging
import sys
from typing import Callable, Optional

from house_watch import (
    ConfigError,
    Extractor,
    PlaywrightSession,
    TelegramNotifier,
    WatchPipeline,
    WatchResult,
    WatchSettings,
    load_settings,
)
from house_watch.notifier import Notifier
from state_repository import StateStore, backend_for_path

LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


async def run_once(
    settings: WatchSettings,
    session_factory: Callable[[bool], PlaywrightSession] = PlaywrightSession,
    notifier: Optional[Notifier] = None,
) -> WatchResult:
    """Run the pipeline once with a fresh browser session."""

    if notifier is None:
        if not settings.telegram_api_key:
            raise ConfigError("TELEGRAM_API_KEY environment variable is required")
        notifier = TelegramNotifier(settings.telegram_api_key)
    store = StateStore(backend_for_path(settings.store_path))
    async with session_factory(settings.headless) as session:
        pipeline = WatchPipeline(
            store,
            Extractor(session),
            notifier,
            chunk_size=settings.chunk_size,
            exchange_rate=settings.uf_rate,
        )
        return await pipeline.run()


def main() -> int:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    LOGGER.info("Starting house watch with %s", settings.to_dict())
    asyncio.run(run_once(settings))
    return 0


if __name__ == "__main__":
    sys.exit(main())
