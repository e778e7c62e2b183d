"""End-to-end tests of the watch pipeline against HTML fixtures."""
from __future__ import annotations

from typing import Dict, Iterable, Optional

import pytest

from fakes import FixtureSession, RecordingNotifier, detail_page, search_page
from house_watch.errors import NotificationDeliveryError, StateStoreError
from house_watch.scraper import Extractor
from house_watch.workflow import WatchPipeline
from state_repository import InMemoryBackend, StateStore

SEARCH_A = "https://listado.example.cl/search-a"
SEARCH_B = "https://listado.example.cl/search-b"


def _url(name: str) -> str:
    return f"https://example.cl/MLC-{name}"


def _group(links, max_total: int = 1_000_000, seen: Iterable[str] = ()) -> Dict[str, object]:
    return {
        "searchLinks": list(links),
        "maxTotal": max_total,
        "alreadySeenHouses": {url: True for url in seen},
    }


class Harness:
    def __init__(
        self,
        document: Dict[str, object],
        pages: Dict[str, str],
        chunk_size: int = 1,
        notifier: Optional[RecordingNotifier] = None,
        failing: Iterable[str] = (),
    ) -> None:
        self.backend = InMemoryBackend(document)
        self.session = FixtureSession(pages, failing)
        self.notifier = notifier or RecordingNotifier()
        self.pipeline = WatchPipeline(
            StateStore(self.backend),
            Extractor(self.session),
            self.notifier,
            chunk_size=chunk_size,
            exchange_rate=38000,
        )

    def seen(self, group_id: str):
        return set(self.backend.read()[group_id]["alreadySeenHouses"])

    def detail_navigations(self):
        return [url for url in self.session.opened if url.startswith("https://example.cl/")]


def _three_listing_pages() -> Dict[str, str]:
    return {
        SEARCH_A: search_page([_url("A"), _url("B") + "#position=2", _url("C")]),
        _url("A"): detail_page(title="A", amount="400.000"),
        _url("B"): detail_page(title="B", amount="410.000"),
        _url("C"): detail_page(title="C", amount="420.000"),
    }


@pytest.fixture
def anyio_backend() -> str:
    """Restrict anyio tests to the asyncio backend for deterministic behaviour."""

    return "asyncio"


@pytest.mark.anyio
async def test_chunk_size_one_sends_each_listing_in_order() -> None:
    harness = Harness({"-100": _group([SEARCH_A])}, _three_listing_pages())

    result = await harness.pipeline.run()

    assert harness.notifier.calls == [
        ("-100", [_url("A")]),
        ("-100", [_url("B")]),
        ("-100", [_url("C")]),
    ]
    assert result.groups[0].batches_sent == 3
    assert result.groups[0].persisted
    assert harness.seen("-100") == {_url("A"), _url("B"), _url("C")}


@pytest.mark.anyio
async def test_larger_chunks_keep_order_with_short_last_batch() -> None:
    harness = Harness({"-100": _group([SEARCH_A])}, _three_listing_pages(), chunk_size=2)

    await harness.pipeline.run()

    assert harness.notifier.calls == [
        ("-100", [_url("A"), _url("B")]),
        ("-100", [_url("C")]),
    ]


@pytest.mark.anyio
async def test_second_run_on_unchanged_page_is_a_no_op() -> None:
    harness = Harness({"-100": _group([SEARCH_A])}, _three_listing_pages())
    await harness.pipeline.run()
    stored_after_first = harness.backend.read()
    writes_after_first = harness.backend.writes
    navigations_after_first = len(harness.detail_navigations())

    result = await harness.pipeline.run()

    assert result.groups[0].listings == []
    assert result.groups[0].skipped_seen == 3
    assert len(harness.notifier.calls) == 3
    assert len(harness.detail_navigations()) == navigations_after_first
    assert harness.backend.writes == writes_after_first
    assert harness.backend.read() == stored_after_first


@pytest.mark.anyio
async def test_seen_candidates_never_trigger_a_detail_navigation() -> None:
    harness = Harness(
        {"-100": _group([SEARCH_A], seen=[_url("A"), _url("C")])}, _three_listing_pages()
    )

    await harness.pipeline.run()

    assert harness.detail_navigations() == [_url("B")]
    assert harness.notifier.calls == [("-100", [_url("B")])]


@pytest.mark.anyio
async def test_budget_boundary_and_rejected_listings_stay_unseen() -> None:
    pages = {
        SEARCH_A: search_page([_url("EQ"), _url("BELOW")]),
        _url("EQ"): detail_page(amount="450.000", fee_label="Gastos comunes $ 50.000"),
        _url("BELOW"): detail_page(amount="450.000", fee_label="Gastos comunes $ 49.999"),
    }
    harness = Harness({"-100": _group([SEARCH_A], max_total=500_000)}, pages)

    result = await harness.pipeline.run()

    assert [listing.url for listing in result.groups[0].listings] == [_url("BELOW")]
    assert result.groups[0].rejected == 1
    assert harness.seen("-100") == {_url("BELOW")}

    await harness.pipeline.run()

    assert harness.detail_navigations().count(_url("EQ")) == 2
    assert harness.detail_navigations().count(_url("BELOW")) == 1


@pytest.mark.anyio
async def test_uf_prices_are_converted_before_budget_check() -> None:
    pages = {
        SEARCH_A: search_page([_url("UF"), _url("CHEAP")]),
        _url("UF"): detail_page(amount="2.500", unit="UF", fee_label=None),
        _url("CHEAP"): detail_page(amount="2.500", unit="$", fee_label=None),
    }
    harness = Harness({"-100": _group([SEARCH_A], max_total=95_000_000)}, pages)

    result = await harness.pipeline.run()

    assert [listing.url for listing in result.groups[0].listings] == [_url("CHEAP")]
    assert result.groups[0].rejected == 1


@pytest.mark.anyio
async def test_failed_delivery_stops_the_run_but_keeps_earlier_groups() -> None:
    pages = _three_listing_pages()
    pages[SEARCH_B] = search_page([_url("Z")])
    pages[_url("Z")] = detail_page(title="Z", amount="300.000")
    document = {
        "-100": _group([SEARCH_B]),
        "-200": _group([SEARCH_A]),
        "-300": _group([SEARCH_B]),
    }
    harness = Harness(document, pages, notifier=RecordingNotifier(fail_on=3))

    with pytest.raises(NotificationDeliveryError):
        await harness.pipeline.run()

    assert harness.notifier.delivered == [("-100", [_url("Z")]), ("-200", [_url("A")])]
    assert len(harness.notifier.calls) == 3
    assert harness.seen("-100") == {_url("Z")}
    assert harness.seen("-200") == set()
    assert harness.seen("-300") == set()
    assert harness.backend.writes == 1


@pytest.mark.anyio
async def test_extraction_failure_skips_only_that_candidate() -> None:
    harness = Harness(
        {"-100": _group([SEARCH_A])}, _three_listing_pages(), failing=[_url("B")]
    )

    result = await harness.pipeline.run()

    group = result.groups[0]
    assert [listing.url for listing in group.listings] == [_url("A"), _url("C")]
    assert [failure.url for failure in group.failures] == [_url("B")]
    assert harness.seen("-100") == {_url("A"), _url("C")}


@pytest.mark.anyio
async def test_failed_search_page_does_not_abort_the_group() -> None:
    pages = _three_listing_pages()
    harness = Harness({"-100": _group([SEARCH_B, SEARCH_A])}, pages, failing=[SEARCH_B])

    result = await harness.pipeline.run()

    assert len(result.groups[0].listings) == 3
    assert result.groups[0].failures[0].url == SEARCH_B


@pytest.mark.anyio
async def test_listing_on_two_search_links_is_sent_once() -> None:
    pages = _three_listing_pages()
    pages[SEARCH_B] = search_page([_url("C"), _url("A")])
    harness = Harness({"-100": _group([SEARCH_A, SEARCH_B])}, pages, chunk_size=10)

    await harness.pipeline.run()

    assert harness.detail_navigations() == [_url("A"), _url("B"), _url("C")]
    assert harness.notifier.calls == [("-100", [_url("A"), _url("B"), _url("C")])]


@pytest.mark.anyio
async def test_group_without_new_listings_is_not_persisted() -> None:
    harness = Harness({"-100": _group([])}, {})

    result = await harness.pipeline.run()

    assert not result.groups[0].persisted
    assert harness.notifier.calls == []
    assert harness.backend.writes == 0


@pytest.mark.anyio
async def test_missing_state_aborts_before_any_navigation() -> None:
    harness = Harness({}, _three_listing_pages())
    harness.backend = InMemoryBackend()
    harness.pipeline.store = StateStore(harness.backend)

    with pytest.raises(StateStoreError):
        await harness.pipeline.run()

    assert harness.session.opened == []


def test_zero_chunk_size_is_rejected() -> None:
    with pytest.raises(ValueError):
        WatchPipeline(StateStore(InMemoryBackend({})), None, RecordingNotifier(), chunk_size=0)
