"""Message formatting for listing notifications."""
from __future__ import annotations

from typing import Iterable, List, Optional

from .models import Listing
from .pricing import format_currency

PLACEHOLDER = "-"


def _text(value: Optional[str]) -> str:
    if value is None:
        return PLACEHOLDER
    stripped = value.strip()
    return stripped or PLACEHOLDER


def format_listing(listing: Listing) -> str:
    """Return the message block describing a single listing."""

    lines = [
        f"🏠 {_text(listing.description)}",
        f"🛏️ {_text(listing.dorms)}",
        f"🚽 {_text(listing.bathrooms)}",
        f"📏 {_text(listing.area)}",
        f"💰 {format_currency(listing.rent)}",
        f"📰 (gc) {format_currency(listing.maintenance_fee)}",
        f"🔗 {listing.url}",
    ]
    return "\n".join(lines)


def format_message(listings: Iterable[Listing]) -> str:
    """Join listing blocks separated by a blank line."""

    blocks: List[str] = [format_listing(listing) for listing in listings]
    return "\n\n".join(blocks)
