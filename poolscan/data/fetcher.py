"""Concurrent multi-page fetcher for new pool listings."""

import asyncio

import structlog

from ..core.interfaces import PoolDataProvider
from ..core.raw import NetworkListing, PoolPage

logger = structlog.get_logger(__name__)


class PoolFetcher:
    """Fetch new pool listings for a network across several pages at once."""

    def __init__(
        self,
        provider: PoolDataProvider,
        page_count: int = 10,
        page_timeout: float = 10.0,
    ) -> None:
        """Initialize pool fetcher.

        Args:
            provider: New pool listing provider
            page_count: Number of result pages to request
            page_timeout: Timeout in seconds for each page request
        """
        self.provider = provider
        self.page_count = page_count
        self.page_timeout = page_timeout

    async def fetch(self, network: str) -> NetworkListing:
        """Fetch and merge all pages for a network.

        A failed page contributes nothing; sibling pages are unaffected.

        Args:
            network: Network identifier

        Returns:
            Merged listing with the pages that failed
        """
        pages = list(range(1, self.page_count + 1))
        results = await asyncio.gather(
            *(self._fetch_page(network, page) for page in pages)
        )

        listing = NetworkListing(network=network, pages_requested=len(pages))
        for page, result in zip(pages, results, strict=True):
            if result is None:
                listing.failed_pages.append(page)
                continue
            listing.pools.extend(result.pools)
            listing.tokens.update(result.tokens())

        logger.debug(
            "Fetched network listing",
            network=network,
            pools=len(listing.pools),
            tokens=len(listing.tokens),
            failed_pages=listing.failed_pages,
        )
        return listing

    async def _fetch_page(self, network: str, page: int) -> PoolPage | None:
        """Fetch one page, returning None on any failure."""
        try:
            return await asyncio.wait_for(
                self.provider.list_new_pools(network, page), timeout=self.page_timeout
            )
        except TimeoutError:
            logger.warning(
                "Page fetch timed out",
                network=network,
                page=page,
                timeout=self.page_timeout,
            )
        except Exception as e:
            logger.warning(
                "Page fetch failed", network=network, page=page, error=str(e)
            )
        return None
