"""Document query capability and its Playwright implementation."""
from __future__ import annotations

import logging
import re
from types import TracebackType
from typing import Any, List, Optional, Protocol, Type

from playwright.async_api import Browser, Page, Playwright, async_playwright

LOGGER = logging.getLogger(__name__)

MAINTENANCE_FEE_PATTERN = re.compile(r"\$\s*([0-9.]+)")

BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]


class Document(Protocol):
    """A loaded page that can be queried with CSS class selectors."""

    url: str

    async def query_all(self, selector: str, within: Any = None) -> List[Any]:
        ...

    async def query_first(self, selector: str, within: Any = None) -> Optional[Any]:
        ...

    async def read_text(self, element: Any) -> Optional[str]:
        ...

    async def read_attribute(self, element: Any, name: str) -> Optional[str]:
        ...

    async def close(self) -> None:
        ...


class DocumentSession(Protocol):
    """Navigates to URLs, one open document per call."""

    async def open(self, url: str) -> Document:
        ...


def clean_text(value: Optional[str]) -> Optional[str]:
    """Collapse whitespace and map empty strings to ``None``."""

    if value is None:
        return None
    collapsed = " ".join(value.split())
    return collapsed or None


async def first_text(document: Document, selector: str, within: Any = None) -> Optional[str]:
    """Return the cleaned text of the first element matching ``selector``."""

    element = await document.query_first(selector, within)
    if element is None:
        return None
    return clean_text(await document.read_text(element))


async def all_texts(document: Document, selector: str, limit: Optional[int] = None) -> List[Optional[str]]:
    """Return cleaned texts of the matching elements in document order."""

    elements = await document.query_all(selector)
    if limit is not None:
        elements = elements[:limit]
    return [clean_text(await document.read_text(element)) for element in elements]


def parse_maintenance_fee(text: Optional[str]) -> Optional[str]:
    """Extract the ``$ 123.456`` amount from a maintenance fee label."""

    if not text:
        return None
    match = MAINTENANCE_FEE_PATTERN.search(text)
    if not match:
        return None
    return match.group(1)


class PlaywrightDocument:
    """:class:`Document` backed by a Playwright page."""

    def __init__(self, page: Page) -> None:
        self._page = page

    @property
    def url(self) -> str:
        return self._page.url

    async def query_all(self, selector: str, within: Any = None) -> List[Any]:
        scope = within if within is not None else self._page
        return await scope.query_selector_all(selector)

    async def query_first(self, selector: str, within: Any = None) -> Optional[Any]:
        scope = within if within is not None else self._page
        return await scope.query_selector(selector)

    async def read_text(self, element: Any) -> Optional[str]:
        return await element.text_content()

    async def read_attribute(self, element: Any, name: str) -> Optional[str]:
        return await element.get_attribute(name)

    async def close(self) -> None:
        await self._page.close()


class PlaywrightSession:
    """Single headless Chromium browser shared by every navigation of a run."""

    def __init__(self, headless: bool = True) -> None:
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightSession":
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless, args=BROWSER_ARGS
        )
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def open(self, url: str) -> PlaywrightDocument:
        if self._browser is None:
            raise RuntimeError("PlaywrightSession must be entered before opening pages")
        page = await self._browser.new_page()
        try:
            await page.goto(url)
        except Exception:
            await page.close()
            raise
        LOGGER.debug("Opened %s", url)
        return PlaywrightDocument(page)
