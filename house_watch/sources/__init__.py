"""Page access backends and marketplace parsers."""
from .marketplace import MERCADOLIBRE, MarketplaceSelectors, list_search_candidates, read_listing
from .playwright_common import Document, DocumentSession, PlaywrightSession

__all__ = [
    "Document",
    "DocumentSession",
    "MERCADOLIBRE",
    "MarketplaceSelectors",
    "PlaywrightSession",
    "list_search_candidates",
    "read_listing",
]
