"""GeckoTerminal data source for new pool listings."""

import asyncio
import time
from typing import Any

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.interfaces import PoolDataProvider
from ..core.raw import IncludedResource, PoolDocument, PoolPage, RawPool

logger = structlog.get_logger(__name__)

_included_adapter: TypeAdapter[IncludedResource] = TypeAdapter(IncludedResource)


class TokenBucket:
    """Simple in-memory token bucket rate limiter."""

    def __init__(self, capacity: int, refill_rate: float) -> None:
        """Initialize token bucket.

        Args:
            capacity: Maximum tokens in bucket
            refill_rate: Tokens per second refill rate
        """
        self.capacity = capacity
        self.refill_rate = refill_rate
        self.tokens = capacity
        self.last_refill = time.monotonic()

    async def acquire(self) -> bool:
        """Try to acquire a token, return True if successful."""
        now = time.monotonic()
        time_passed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + time_passed * self.refill_rate)
        self.last_refill = now

        if self.tokens >= 1:
            self.tokens -= 1
            return True
        return False


def parse_pool_page(payload: Any) -> PoolPage:
    """Map a new_pools response body to a PoolPage.

    Records that fail validation are dropped individually; a body that is not
    a JSON:API document at all raises ValueError.

    Args:
        payload: Decoded JSON body

    Returns:
        PoolPage with typed pool and included records
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise ValueError("Malformed new_pools response: missing data list")

    pools: list[RawPool] = []
    dropped = 0
    for record in payload["data"]:
        try:
            pools.append(RawPool.model_validate(record))
        except ValidationError as e:
            dropped += 1
            logger.debug("Dropped malformed pool record", error=str(e))

    return PoolPage(
        pools=pools, included=_parse_included(payload.get("included")), dropped=dropped
    )


def parse_pool_document(payload: Any) -> PoolDocument:
    """Map a single pool response body to a PoolDocument.

    Raises:
        ValueError: If the body does not contain a valid pool resource
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        raise ValueError("Malformed pool response: missing data object")

    try:
        pool = RawPool.model_validate(payload["data"])
    except ValidationError as e:
        raise ValueError(f"Malformed pool record: {e}") from e

    return PoolDocument(pool=pool, included=_parse_included(payload.get("included")))


def _parse_included(records: Any) -> list[IncludedResource]:
    """Parse the included side table, skipping unknown resource types."""
    if not isinstance(records, list):
        return []

    included: list[IncludedResource] = []
    for record in records:
        try:
            included.append(_included_adapter.validate_python(record))
        except ValidationError:
            logger.debug(
                "Skipped included resource",
                resource_type=record.get("type") if isinstance(record, dict) else None,
            )
    return included


class GeckoTerminalClient(PoolDataProvider):
    """GeckoTerminal API client for new pool discovery."""

    def __init__(
        self,
        base_url: str = "https://api.geckoterminal.com/api/v2",
        session: httpx.AsyncClient | None = None,
        requests_per_minute: int = 30,
        request_timeout: float = 10.0,
    ) -> None:
        """Initialize GeckoTerminal client.

        Args:
            base_url: GeckoTerminal API base URL
            session: Optional httpx client session
            requests_per_minute: Rate limit budget
            request_timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self.session = session or httpx.AsyncClient(timeout=request_timeout)
        self._owns_session = session is None

        self.rate_limiter = TokenBucket(
            capacity=requests_per_minute, refill_rate=requests_per_minute / 60
        )

        self.retry_config = AsyncRetrying(
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
            reraise=True,
        )

    async def _make_request(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any:
        """Make HTTP request with rate limiting and retries.

        Args:
            endpoint: API endpoint path
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            httpx.HTTPError: On HTTP errors
        """
        while not await self.rate_limiter.acquire():
            await asyncio.sleep(0.1)

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = {"Accept": "application/json;version=20230302"}

        # Pages are fetched concurrently, so each request gets its own retry state
        async for attempt in self.retry_config.copy():
            with attempt:
                try:
                    response = await self.session.get(
                        url, params=params, headers=headers, timeout=self.request_timeout
                    )
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as e:
                    logger.warning(
                        "HTTP error in GeckoTerminal request",
                        endpoint=endpoint,
                        status_code=e.response.status_code,
                        attempt=attempt.retry_state.attempt_number,
                    )
                    raise
                except (httpx.NetworkError, httpx.TimeoutException) as e:
                    logger.warning(
                        "Network error in GeckoTerminal request",
                        endpoint=endpoint,
                        error=str(e),
                        attempt=attempt.retry_state.attempt_number,
                    )
                    raise

    async def list_new_pools(self, network: str, page: int) -> PoolPage:
        """Fetch one page of new pools with base token metadata.

        Args:
            network: GeckoTerminal network identifier
            page: 1-based page number

        Returns:
            Parsed page of pools and included tokens
        """
        payload = await self._make_request(
            f"networks/{network}/new_pools",
            params={"include": "base_token", "page": page},
        )
        pool_page = parse_pool_page(payload)

        logger.debug(
            "Fetched new pools page",
            network=network,
            page=page,
            pools=len(pool_page.pools),
            dropped=pool_page.dropped,
        )
        return pool_page

    async def get_pool(self, network: str, address: str) -> PoolDocument:
        """Fetch a single pool with its base token.

        Args:
            network: GeckoTerminal network identifier
            address: Pool contract address

        Returns:
            Parsed pool document
        """
        payload = await self._make_request(
            f"networks/{network}/pools/{address}", params={"include": "base_token"}
        )
        return parse_pool_document(payload)

    async def close(self) -> None:
        """Close the underlying session if owned."""
        if self._owns_session:
            await self.session.aclose()
