"""Shared data structures used across scraping and processing."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set


@dataclass
class GroupConfig:
    """A subscriber chat with its search links, budget and seen listings."""

    group_id: str
    search_links: List[str]
    max_total: int
    seen: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class CandidateRef:
    """A listing link found on a search results page."""

    url: str
    position: int = 0


@dataclass(frozen=True)
class RawPriceFields:
    amount_text: str
    unit: str


@dataclass
class RawListing:
    """Fields read from a listing detail page before normalisation."""

    url: str
    description: Optional[str] = None
    dorms: Optional[str] = None
    bathrooms: Optional[str] = None
    area: Optional[str] = None
    price: Optional[RawPriceFields] = None
    maintenance_fee_text: Optional[str] = None


@dataclass
class Listing:
    """Normalised listing with amounts in the reference currency."""

    url: str
    description: Optional[str] = None
    dorms: Optional[str] = None
    bathrooms: Optional[str] = None
    area: Optional[str] = None
    rent: Optional[int] = None
    maintenance_fee: Optional[int] = None

    @property
    def total(self) -> int:
        return (self.rent or 0) + (self.maintenance_fee or 0)

    def to_dict(self) -> Dict[str, object]:
        return {
            "url": self.url,
            "description": self.description,
            "dorms": self.dorms,
            "bathrooms": self.bathrooms,
            "area": self.area,
            "rent": self.rent,
            "maintenance_fee": self.maintenance_fee,
        }
