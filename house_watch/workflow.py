"""High level orchestration for running the house watch pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import AsyncIterator, Dict, List, Protocol, Set

from .config import DEFAULT_UF_RATE
from .errors import ExtractionFailure, NotificationDeliveryError
from .models import CandidateRef, GroupConfig, Listing
from .notifier import Notifier
from .pricing import normalize_listing
from .processor import chunk, is_seen, qualifies, summarise_listings
from .scraper import Extractor

LOGGER = logging.getLogger(__name__)


class GroupStore(Protocol):
    def load(self) -> Dict[str, GroupConfig]:
        ...

    def mark_seen(self, group_id: str, urls: List[str]) -> None:
        ...


@dataclass
class GroupResult:
    """Outcome of processing one group."""

    group_id: str
    listings: List[Listing] = field(default_factory=list)
    batches_sent: int = 0
    skipped_seen: int = 0
    rejected: int = 0
    failures: List[ExtractionFailure] = field(default_factory=list)
    persisted: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "group_id": self.group_id,
            "listings": [listing.to_dict() for listing in self.listings],
            "batches_sent": self.batches_sent,
            "skipped_seen": self.skipped_seen,
            "rejected": self.rejected,
            "failures": [str(failure) for failure in self.failures],
            "persisted": self.persisted,
        }


@dataclass
class WatchResult:
    """Result returned by :meth:`WatchPipeline.run`."""

    groups: List[GroupResult] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(len(group.listings) for group in self.groups if group.persisted)

    def to_dict(self) -> Dict[str, object]:
        return {"groups": [group.to_dict() for group in self.groups], "sent": self.sent}


class WatchPipeline:
    """Runs every group sequentially: search, dedup, extract, filter, send, persist."""

    def __init__(
        self,
        store: GroupStore,
        extractor: Extractor,
        notifier: Notifier,
        chunk_size: int = 1,
        exchange_rate: int = DEFAULT_UF_RATE,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk size must be at least 1, got {chunk_size}")
        self.store = store
        self.extractor = extractor
        self.notifier = notifier
        self.chunk_size = chunk_size
        self.exchange_rate = exchange_rate

    async def run(self) -> WatchResult:
        groups = self.store.load()
        result = WatchResult()
        for group in groups.values():
            result.groups.append(await self.process_group(group))
        LOGGER.info("Watch run finished, %d listing(s) sent", result.sent)
        return result

    async def process_group(self, group: GroupConfig) -> GroupResult:
        result = GroupResult(group_id=group.group_id)
        visited: Set[str] = set()

        for link in group.search_links:
            async for listing in self._qualifying(link, group, visited, result):
                result.listings.append(listing)

        if not result.listings:
            LOGGER.info("No new listings for %s", group.group_id)
            return result

        summary = summarise_listings(result.listings)
        LOGGER.info(
            "Group %s: %d new listing(s), cheapest total %.0f, average %.0f",
            group.group_id,
            summary["count"],
            summary["min_total"],
            summary["average_total"],
        )

        for batch in chunk(result.listings, self.chunk_size):
            try:
                self.notifier.send_listings(group.group_id, batch)
            except NotificationDeliveryError:
                LOGGER.error(
                    "Aborting run: batch %d for %s could not be delivered",
                    result.batches_sent + 1,
                    group.group_id,
                )
                raise
            result.batches_sent += 1

        # Reached only when every batch was delivered.
        self.store.mark_seen(group.group_id, [listing.url for listing in result.listings])
        result.persisted = True
        return result

    def _qualifying(
        self, link: str, group: GroupConfig, visited: Set[str], result: GroupResult
    ) -> AsyncIterator[Listing]:
        candidates = self._candidates(link, result)
        unseen = self._unseen(candidates, group, visited, result)
        listings = self._extracted(unseen, result)
        return self._within_budget(listings, group, result)

    async def _candidates(self, link: str, result: GroupResult) -> AsyncIterator[CandidateRef]:
        outcome = await self.extractor.search(link)
        if outcome.error is not None:
            LOGGER.warning("Search page failed for %s: %s", result.group_id, outcome.error)
            result.failures.append(outcome.error)
            return
        for candidate in outcome.candidates:
            yield candidate

    async def _unseen(
        self,
        candidates: AsyncIterator[CandidateRef],
        group: GroupConfig,
        visited: Set[str],
        result: GroupResult,
    ) -> AsyncIterator[CandidateRef]:
        async for candidate in candidates:
            if is_seen(group, candidate.url, visited):
                LOGGER.debug("House already seen: %s", candidate.url)
                result.skipped_seen += 1
                continue
            visited.add(candidate.url)
            yield candidate

    async def _extracted(
        self, candidates: AsyncIterator[CandidateRef], result: GroupResult
    ) -> AsyncIterator[Listing]:
        async for candidate in candidates:
            outcome = await self.extractor.fetch_detail(candidate.url)
            if outcome.listing is None:
                LOGGER.warning("Skipping %s: %s", candidate.url, outcome.error)
                if outcome.error is not None:
                    result.failures.append(outcome.error)
                continue
            yield normalize_listing(outcome.listing, self.exchange_rate)

    async def _within_budget(
        self, listings: AsyncIterator[Listing], group: GroupConfig, result: GroupResult
    ) -> AsyncIterator[Listing]:
        async for listing in listings:
            if not qualifies(listing, group.max_total):
                LOGGER.debug(
                    "Over budget (%d >= %d): %s", listing.total, group.max_total, listing.url
                )
                result.rejected += 1
                continue
            yield listing
