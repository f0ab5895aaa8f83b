"""Criteria filter for scored pools."""

from collections.abc import Iterable

import structlog

from ..core.interfaces import Filter
from ..core.types import Criteria, FilterDecision, ScoredPool

logger = structlog.get_logger(__name__)


class CriteriaFilter(Filter):
    """Retain pools clearing the liquidity, volume and activity minimums."""

    def __init__(self, criteria: Criteria | None = None) -> None:
        """Initialize criteria filter."""
        self.criteria = criteria or Criteria()

    def evaluate(self, scored: ScoredPool) -> FilterDecision:
        """Evaluate a scored pool against the criteria."""
        pool = scored.pool
        criteria = self.criteria
        reasons = []
        score = 1.0

        if not pool.reserve_usd > criteria.min_liquidity:
            reasons.append(
                f"Liquidity too low: ${pool.reserve_usd:.2f} <= ${criteria.min_liquidity:.2f}"
            )
            score -= 0.4

        if not pool.vol_mc_ratio > criteria.min_vol_mc_ratio:
            reasons.append(
                f"Volume/market cap too low: {pool.vol_mc_ratio:.3f} <= "
                f"{criteria.min_vol_mc_ratio:.3f}"
            )
            score -= 0.3

        if pool.transactions_1h < criteria.min_tx_1h:
            reasons.append(
                f"Too few transactions: {pool.transactions_1h} < {criteria.min_tx_1h}"
            )
            score -= 0.3

        accepted = not reasons
        if accepted:
            reasons.append("Passed criteria")

        logger.debug(
            "Criteria evaluation",
            network=pool.network,
            address=pool.address,
            accepted=accepted,
            reasons=reasons,
        )

        return FilterDecision(accepted=accepted, score=max(0.0, score), reasons=reasons)

    def apply(self, pools: Iterable[ScoredPool]) -> list[ScoredPool]:
        """Return qualifying pools ranked by hype score, highest first.

        The sort is stable, so equal scores keep fetch order.
        """
        accepted = [scored for scored in pools if self.evaluate(scored).accepted]
        return sorted(accepted, key=lambda scored: scored.hype_score, reverse=True)
