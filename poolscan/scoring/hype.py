"""Hype score model."""

import math
from collections.abc import Iterable
from datetime import UTC, datetime

from ..core.types import Pool, ScoredPool

VOL_MC_CAP = 40.0
TX_VELOCITY_DIVISOR = 5.0
TX_VELOCITY_CAP = 30.0
LIQUIDITY_REFERENCE_USD = 50_000.0
LIQUIDITY_CAP = 20.0
TWITTER_BONUS = 5.0
TELEGRAM_BONUS = 5.0
WEBSITE_BONUS = 2.0
FRESHNESS_BONUS = 10.0
FRESHNESS_WINDOW_HOURS = 6.0


def hype_components(pool: Pool, now: datetime | None = None) -> dict[str, float]:
    """Return the five independently capped hype components."""
    age = pool.age_hours(now or datetime.now(UTC))

    social = 0.0
    if pool.twitter:
        social += TWITTER_BONUS
    if pool.telegram:
        social += TELEGRAM_BONUS
    if pool.website:
        social += WEBSITE_BONUS

    return {
        "vol_mc": min(pool.vol_mc_ratio * 100, VOL_MC_CAP),
        "tx_velocity": min(pool.transactions_1h / TX_VELOCITY_DIVISOR, TX_VELOCITY_CAP),
        "liquidity": min(
            pool.reserve_usd / LIQUIDITY_REFERENCE_USD * LIQUIDITY_CAP, LIQUIDITY_CAP
        ),
        "social": social,
        "freshness": (
            FRESHNESS_BONUS
            if age is not None and age < FRESHNESS_WINDOW_HOURS
            else 0.0
        ),
    }


def hype_score(pool: Pool, now: datetime | None = None) -> int:
    """Compute the 0-100 hype score of a pool.

    Halves round up. A pool with unknown creation time gets no freshness bonus.

    Args:
        pool: Pool to score
        now: Reference time for the freshness bonus

    Returns:
        Hype score clamped to [0, 100]
    """
    total = sum(hype_components(pool, now).values())
    return max(0, min(math.floor(total + 0.5), 100))


def score_pools(pools: Iterable[Pool], now: datetime | None = None) -> list[ScoredPool]:
    """Score a batch of pools against a single reference time."""
    now = now or datetime.now(UTC)
    return [ScoredPool(pool=pool, hype_score=hype_score(pool, now)) for pool in pools]
