"""Map raw provider pool records to canonical Pool records."""

import math
from datetime import UTC, datetime
from typing import Any

import structlog

from ..core.raw import NetworkListing, RawPool, RawToken
from ..core.types import Pool

logger = structlog.get_logger(__name__)

SYMBOL_SEPARATOR = " / "


def parse_amount(value: Any) -> float:
    """Parse a non-negative amount, returning 0.0 for anything unusable."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount) or amount < 0:
        return 0.0
    return amount


def parse_count(value: Any) -> int:
    """Parse a non-negative count, returning 0 for anything unusable."""
    return int(parse_amount(value))


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch milliseconds into an aware datetime."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, int | float):
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts


def extract_symbol(name: str) -> str:
    """Return the part of a pool name before the first " / " separator."""
    return name.split(SYMBOL_SEPARATOR, 1)[0]


def strip_network_prefix(resource_id: str | None) -> str:
    """Extract the address from a "<network>_<address>" resource id."""
    if not resource_id:
        return ""
    return resource_id.rpartition("_")[2]


def _first(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


def normalize_pool(
    raw: RawPool, network: str, base_token: RawToken | None = None
) -> Pool | None:
    """Map one raw pool record to a Pool.

    Args:
        raw: Raw pool resource
        network: Network the record was listed on
        base_token: Matching base token metadata, if included

    Returns:
        Pool, or None when the record has no usable address
    """
    attrs = raw.attributes
    address = (attrs.address or "").strip()
    if not address:
        logger.debug("Dropped pool without address", network=network, pool_id=raw.id)
        return None

    token = base_token.attributes if base_token is not None else None
    name = attrs.name or ""
    volume = attrs.volume_usd or {}
    tx_1h = (attrs.transactions or {}).get("h1") or {}
    if not isinstance(tx_1h, dict):
        tx_1h = {}

    fdv = parse_amount(attrs.fdv_usd)
    market_cap = fdv if fdv > 0 else parse_amount(attrs.market_cap_usd)

    base_token_address = strip_network_prefix(
        attrs.base_token_id or raw.related_id("base_token")
    )
    quote_token_address = (
        strip_network_prefix(attrs.quote_token_id or raw.related_id("quote_token"))
        or None
    )

    return Pool(
        id=raw.id,
        network=network,
        address=address,
        base_token_address=base_token_address,
        quote_token_address=quote_token_address,
        name=name,
        symbol=extract_symbol(name),
        dex_id=raw.related_id("dex"),
        price_usd=parse_amount(attrs.base_token_price_usd),
        reserve_usd=parse_amount(attrs.reserve_in_usd),
        volume_24h_usd=parse_amount(volume.get("h24")),
        market_cap_usd=market_cap,
        transactions_1h=parse_count(tx_1h.get("buys")) + parse_count(tx_1h.get("sells")),
        created_at=parse_timestamp(attrs.pool_created_at),
        twitter=_first(attrs.twitter_handle, token.twitter_handle if token else None),
        telegram=_first(
            attrs.telegram_handle, token.telegram_handle if token else None
        ),
        website=_first(
            (attrs.websites or [None])[0],
            (token.websites or [None])[0] if token else None,
        ),
        discord=_first(attrs.discord_url, token.discord_url if token else None),
        image_url=_first(attrs.image_url, token.image_url if token else None),
    )


def normalize_listing(listing: NetworkListing) -> list[Pool]:
    """Normalize every record of a listing, keeping first-seen order.

    Duplicate addresses (pages shift while new pools arrive) keep their first
    occurrence.
    """
    pools: list[Pool] = []
    seen: set[str] = set()
    dropped = 0

    for raw in listing.pools:
        base_token = listing.tokens.get(raw.related_id("base_token") or "")
        pool = normalize_pool(raw, listing.network, base_token)
        if pool is None:
            dropped += 1
            continue
        if pool.address in seen:
            continue
        seen.add(pool.address)
        pools.append(pool)

    if dropped:
        logger.info(
            "Dropped pools without address", network=listing.network, dropped=dropped
        )
    return pools
