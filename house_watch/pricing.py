"""Price normalisation into the reference currency (Chilean pesos)."""
from __future__ import annotations

import logging
import re
from typing import Optional

from .models import Listing, RawListing

LOGGER = logging.getLogger(__name__)

INDEXED_UNIT = "UF"
REFERENCE_SYMBOL = "$"

_SEPARATOR_PATTERN = re.compile(r"[.,\s]")
_DIGITS_PATTERN = re.compile(r"\d+")


def is_indexed_unit(unit: str | None) -> bool:
    """Return ``True`` when the unit tag denotes the UF indexed unit."""

    return (unit or "").strip().upper() == INDEXED_UNIT


def parse_amount(amount_text: str | None) -> Optional[int]:
    """Parse an amount with thousands separators, ``None`` if malformed."""

    if not amount_text:
        return None
    cleaned = _SEPARATOR_PATTERN.sub("", amount_text)
    if not _DIGITS_PATTERN.fullmatch(cleaned):
        return None
    return int(cleaned)


def normalize_price(amount_text: str | None, unit: str | None, exchange_rate: int) -> int:
    """Convert a raw amount and unit tag into an integer peso amount.

    Malformed amounts fall back to ``0`` so that a broken price never
    reaches the budget comparison as an invalid number.
    """

    amount = parse_amount(amount_text)
    if amount is None:
        LOGGER.debug("Unparseable amount %r (%s), treating as 0", amount_text, unit)
        return 0
    if is_indexed_unit(unit):
        return amount * exchange_rate
    return amount


def normalize_listing(raw: RawListing, exchange_rate: int) -> Listing:
    """Map extracted detail fields into a :class:`Listing`."""

    rent: Optional[int] = None
    if raw.price is not None:
        rent = normalize_price(raw.price.amount_text, raw.price.unit, exchange_rate)

    maintenance_fee: Optional[int] = None
    if raw.maintenance_fee_text is not None:
        # Maintenance fees are always quoted in pesos.
        maintenance_fee = normalize_price(raw.maintenance_fee_text, REFERENCE_SYMBOL, exchange_rate)

    return Listing(
        url=raw.url,
        description=raw.description,
        dorms=raw.dorms,
        bathrooms=raw.bathrooms,
        area=raw.area,
        rent=rent,
        maintenance_fee=maintenance_fee,
    )


def format_currency(amount: Optional[int]) -> str:
    """Render an amount as ``$ 1.234.567``."""

    if amount is None:
        return "-"
    return f"{REFERENCE_SYMBOL} {amount:,}".replace(",", ".")
