"""Marketplace-specific selectors and page parsing."""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional
from urllib.parse import urljoin

from house_watch.models import CandidateRef, RawListing, RawPriceFields
from house_watch.processor import strip_fragment
from .playwright_common import Document, all_texts, first_text, parse_maintenance_fee

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketplaceSelectors:
    """Selectors describing the search and detail pages of a marketplace."""

    card: str
    card_link: str
    price_fraction: str
    currency_symbol: str
    title: str
    spec_label: str
    maintenance_fee: str


MERCADOLIBRE = MarketplaceSelectors(
    card=".andes-card",
    card_link="a",
    price_fraction=".andes-money-amount__fraction",
    currency_symbol=".andes-money-amount__currency-symbol",
    title=".ui-pdp-title",
    spec_label=".ui-pdp-color--BLACK.ui-pdp-size--SMALL.ui-pdp-family--REGULAR.ui-pdp-label",
    maintenance_fee=(
        ".ui-pdp-color--GRAY.ui-pdp-size--XSMALL.ui-pdp-family--REGULAR"
        ".ui-pdp-maintenance-fee-ltr"
    ),
)


async def list_search_candidates(
    document: Document, selectors: MarketplaceSelectors = MERCADOLIBRE
) -> List[CandidateRef]:
    """Return the detail links of the result cards in document order."""

    candidates: List[CandidateRef] = []
    cards = await document.query_all(selectors.card)
    for position, card in enumerate(cards):
        anchor = await document.query_first(selectors.card_link, card)
        href = await document.read_attribute(anchor, "href") if anchor is not None else None
        url = strip_fragment(urljoin(document.url, href.strip())) if href and href.strip() else ""
        if not url:
            LOGGER.info("Unable to retrieve house url for card %d on %s", position, document.url)
            continue
        candidates.append(CandidateRef(url=url, position=position))
    return candidates


async def read_listing(
    document: Document, url: str, selectors: MarketplaceSelectors = MERCADOLIBRE
) -> RawListing:
    """Read the raw listing fields from an opened detail page."""

    amount = await first_text(document, selectors.price_fraction)
    unit = await first_text(document, selectors.currency_symbol)
    price: Optional[RawPriceFields] = None
    if amount:
        price = RawPriceFields(amount_text=amount, unit=unit or "")

    # area, dorms and bathrooms share one label class, always in this order
    specs = await all_texts(document, selectors.spec_label, limit=3)
    specs += [None] * (3 - len(specs))
    area, dorms, bathrooms = specs

    fee_label = await first_text(document, selectors.maintenance_fee)

    return RawListing(
        url=url,
        description=await first_text(document, selectors.title),
        dorms=dorms,
        bathrooms=bathrooms,
        area=area,
        price=price,
        maintenance_fee_text=parse_maintenance_fee(fee_label),
    )
