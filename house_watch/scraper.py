"""Search and detail page extraction on top of a document session."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import List, Optional

from .errors import ExtractionFailure
from .models import CandidateRef, RawListing
from .processor import strip_fragment
from .sources.marketplace import MERCADOLIBRE, MarketplaceSelectors, list_search_candidates, read_listing
from .sources.playwright_common import Document, DocumentSession

LOGGER = logging.getLogger(__name__)


@dataclass
class SearchOutcome:
    """Candidates of one search page, or the failure that prevented reading it."""

    url: str
    candidates: List[CandidateRef] = field(default_factory=list)
    error: Optional[ExtractionFailure] = None


@dataclass
class DetailOutcome:
    """Fields of one detail page, or the failure that prevented reading it."""

    url: str
    listing: Optional[RawListing] = None
    error: Optional[ExtractionFailure] = None

    @property
    def ok(self) -> bool:
        return self.listing is not None


class Extractor:
    """Reads search and detail pages one navigation at a time."""

    def __init__(
        self, session: DocumentSession, selectors: MarketplaceSelectors = MERCADOLIBRE
    ) -> None:
        self.session = session
        self.selectors = selectors

    async def search(self, url: str) -> SearchOutcome:
        document: Optional[Document] = None
        try:
            document = await self.session.open(url)
            candidates = await list_search_candidates(document, self.selectors)
        except Exception as exc:
            return SearchOutcome(url=url, error=ExtractionFailure(url, str(exc) or type(exc).__name__, exc))
        finally:
            await _close_quietly(document)
        LOGGER.info("Found %d candidate(s) on %s", len(candidates), url)
        return SearchOutcome(url=url, candidates=candidates)

    async def fetch_detail(self, url: str) -> DetailOutcome:
        key = strip_fragment(url)
        document: Optional[Document] = None
        try:
            document = await self.session.open(key)
            listing = await read_listing(document, key, self.selectors)
        except Exception as exc:
            return DetailOutcome(url=key, error=ExtractionFailure(key, str(exc) or type(exc).__name__, exc))
        finally:
            await _close_quietly(document)
        return DetailOutcome(url=key, listing=listing)


async def _close_quietly(document: Optional[Document]) -> None:
    if document is None:
        return
    try:
        await document.close()
    except Exception as exc:  # pragma: no cover - browser teardown
        LOGGER.debug("Failed to close %s: %s", document.url, exc)
