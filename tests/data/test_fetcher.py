"""Tests for the concurrent page fetcher."""

import asyncio

import pytest

from poolscan.core.raw import PoolPage, RawPool, RawToken
from poolscan.data.fetcher import PoolFetcher


def _page(page: int) -> PoolPage:
    return PoolPage(
        pools=[
            RawPool(id=f"solana_P{page}", attributes={"address": f"P{page}"}),
        ],
        included=[RawToken(type="token", id=f"solana_T{page}")],
    )


class FakeProvider:
    """Provider returning one pool per page with scripted failures."""

    def __init__(self, failing=(), slow=(), delay=0.5):
        self.failing = set(failing)
        self.slow = set(slow)
        self.delay = delay
        self.calls = []

    async def list_new_pools(self, network, page):
        self.calls.append((network, page))
        if page in self.slow:
            await asyncio.sleep(self.delay)
        if page in self.failing:
            raise RuntimeError(f"page {page} failed")
        return _page(page)

    async def get_pool(self, network, address):
        raise NotImplementedError


@pytest.mark.asyncio
async def test_fetch_merges_pages_in_order():
    """Test that all pages are requested and merged in page order."""
    provider = FakeProvider()
    fetcher = PoolFetcher(provider, page_count=3)

    listing = await fetcher.fetch("solana")

    assert sorted(provider.calls) == [("solana", 1), ("solana", 2), ("solana", 3)]
    assert [pool.id for pool in listing.pools] == ["solana_P1", "solana_P2", "solana_P3"]
    assert set(listing.tokens) == {"solana_T1", "solana_T2", "solana_T3"}
    assert listing.failed_pages == []
    assert listing.all_failed is False


@pytest.mark.asyncio
async def test_failed_page_does_not_affect_siblings():
    """Test partial failure isolation across pages."""
    provider = FakeProvider(failing={2})
    fetcher = PoolFetcher(provider, page_count=3)

    listing = await fetcher.fetch("solana")

    assert [pool.id for pool in listing.pools] == ["solana_P1", "solana_P3"]
    assert listing.failed_pages == [2]


@pytest.mark.asyncio
async def test_slow_page_times_out():
    """Test that a page exceeding its timeout is treated as failed."""
    provider = FakeProvider(slow={1}, delay=1.0)
    fetcher = PoolFetcher(provider, page_count=2, page_timeout=0.05)

    listing = await fetcher.fetch("solana")

    assert [pool.id for pool in listing.pools] == ["solana_P2"]
    assert listing.failed_pages == [1]


@pytest.mark.asyncio
async def test_all_pages_failed():
    """Test the all-failed summary."""
    provider = FakeProvider(failing={1, 2})
    fetcher = PoolFetcher(provider, page_count=2)

    listing = await fetcher.fetch("base")

    assert listing.pools == []
    assert listing.failed_pages == [1, 2]
    assert listing.all_failed is True
