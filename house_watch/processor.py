"""Deduplication, budget filtering and batching of listings."""
from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, List, Sequence, TypeVar

import pandas as pd

from .models import GroupConfig, Listing

T = TypeVar("T")

_COLUMNS = ["url", "description", "dorms", "bathrooms", "area", "rent", "maintenance_fee"]
_AMOUNT_COLUMNS = ["rent", "maintenance_fee"]


def strip_fragment(url: str) -> str:
    """Drop the ``#fragment`` part of a URL, keeping the query string."""

    return url.split("#", 1)[0]


def is_seen(group: GroupConfig, url: str, visited: AbstractSet[str] = frozenset()) -> bool:
    """Return whether ``url`` was already reported to the group.

    ``visited`` holds URLs already considered earlier in the current run so a
    listing showing up under two search links is fetched and sent only once.
    """

    key = strip_fragment(url)
    return key in group.seen or key in visited


def qualifies(listing: Listing, max_total: int) -> bool:
    """Rent plus maintenance fee must stay strictly below the budget."""

    return (listing.rent or 0) + (listing.maintenance_fee or 0) < max_total


def listings_to_dataframe(listings: Iterable[Listing]) -> pd.DataFrame:
    """Convert listings into a :class:`~pandas.DataFrame` with numeric amounts."""

    records = [listing.to_dict() for listing in listings]
    df = pd.DataFrame.from_records(records, columns=_COLUMNS)
    for column in _AMOUNT_COLUMNS:
        df[column] = pd.to_numeric(df[column])
    return df


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Split ``items`` into consecutive groups of ``size``."""

    if size < 1:
        raise ValueError(f"chunk size must be at least 1, got {size}")
    item_list = list(items)
    return [item_list[start : start + size] for start in range(0, len(item_list), size)]


def summarise_listings(listings: List[Listing]) -> Dict[str, float]:
    """Return simple statistics about the monthly totals of the listings."""

    df = listings_to_dataframe(listings)
    if df.empty:
        return {"count": 0, "average_total": 0.0, "min_total": 0.0}
    totals = df["rent"].fillna(0) + df["maintenance_fee"].fillna(0)
    return {
        "count": len(totals),
        "average_total": float(totals.mean()),
        "min_total": float(totals.min()),
    }
