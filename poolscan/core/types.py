"""Core data types for the pool scanner."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Pool(BaseModel):
    """Canonical trading pool record for one scan cycle."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque provider identifier")
    network: str = Field(description="Network identifier, e.g. solana")
    address: str = Field(min_length=1, description="Pool contract address")
    base_token_address: str = Field(default="", description="Base token address")
    quote_token_address: str | None = Field(
        default=None, description="Quote token address"
    )
    name: str = Field(default="", description="Pool display name")
    symbol: str = Field(default="", description="Base token symbol")
    dex_id: str | None = Field(default=None, description="DEX identifier")
    price_usd: float = Field(default=0.0, ge=0, description="Base token price in USD")
    reserve_usd: float = Field(default=0.0, ge=0, description="Liquidity in USD")
    volume_24h_usd: float = Field(default=0.0, ge=0, description="24h volume in USD")
    market_cap_usd: float = Field(
        default=0.0, ge=0, description="Market cap (FDV proxy) in USD"
    )
    transactions_1h: int = Field(
        default=0, ge=0, description="Buys plus sells over the last hour"
    )
    created_at: datetime | None = Field(default=None, description="Pool creation time")
    twitter: str | None = Field(default=None, description="Twitter handle")
    telegram: str | None = Field(default=None, description="Telegram handle or URL")
    website: str | None = Field(default=None, description="Primary website")
    discord: str | None = Field(default=None, description="Discord URL")
    image_url: str | None = Field(default=None, description="Token image URL")

    @property
    def key(self) -> tuple[str, str]:
        """Dedup key for the pool."""
        return (self.network, self.address)

    @property
    def vol_mc_ratio(self) -> float:
        """24h volume over market cap, with market cap floored at 1."""
        return self.volume_24h_usd / max(self.market_cap_usd, 1.0)

    def age_hours(self, now: datetime | None = None) -> float | None:
        """Pool age in hours, or None when the creation time is unknown."""
        if self.created_at is None:
            return None
        now = now or datetime.now(UTC)
        return (now - self.created_at).total_seconds() / 3600


class ScoredPool(BaseModel):
    """Pool with its derived hype score attached."""

    model_config = ConfigDict(frozen=True)

    pool: Pool = Field(description="Scored pool")
    hype_score: int = Field(ge=0, le=100, description="Hype score (0-100)")


class SecurityResult(BaseModel):
    """Contract safety audit result."""

    trust_score: int = Field(ge=0, le=100, description="Trust score (0-100)")
    issues: list[str] = Field(default_factory=list, description="Detected issues")
    raw: dict | None = Field(default=None, description="Provider payload")


class AlertCandidate(BaseModel):
    """Pool that crossed both the hype and trust thresholds."""

    pool: Pool = Field(description="Alerted pool")
    hype_score: int = Field(ge=0, le=100, description="Hype score (0-100)")
    trust_score: int = Field(ge=0, le=100, description="Trust score (0-100)")
    issues: list[str] = Field(default_factory=list, description="Security issues")
    detected_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Detection time"
    )


class Criteria(BaseModel):
    """Minimum thresholds a pool must clear to be considered for alerting."""

    min_liquidity: float = Field(default=5000.0, ge=0, description="Min reserve USD")
    min_vol_mc_ratio: float = Field(
        default=0.15, ge=0, description="Min 24h volume / market cap"
    )
    min_tx_1h: int = Field(default=50, ge=0, description="Min transactions in 1h")


class FilterDecision(BaseModel):
    """Filter evaluation decision."""

    accepted: bool = Field(description="Whether the pool passed the filter")
    score: float = Field(description="Filter score (0-1)")
    reasons: list[str] = Field(default_factory=list, description="Reasons for decision")


class PoolOutcome(StrEnum):
    """Terminal state of one pool evaluation within a tick."""

    ALREADY_ALERTED = "already_alerted"
    BELOW_THRESHOLD = "below_threshold"
    LOW_TRUST = "low_trust"
    ALERTED = "alerted"


class NetworkReport(BaseModel):
    """Outcome of scanning one network during a tick."""

    network: str = Field(description="Network identifier")
    fetched: int = Field(default=0, description="Raw pool records fetched")
    normalized: int = Field(default=0, description="Pools normalized")
    scored: int = Field(default=0, description="Pools scored")
    qualifying: int = Field(default=0, description="Pools passing the criteria")
    failed_pages: list[int] = Field(default_factory=list, description="Failed pages")
    outcomes: dict[str, int] = Field(
        default_factory=dict, description="Evaluation outcome counts"
    )
    error: str | None = Field(default=None, description="Network-level failure")


class TickReport(BaseModel):
    """Summary of one scan tick across all networks."""

    started_at: datetime = Field(description="Tick start time")
    finished_at: datetime | None = Field(default=None, description="Tick end time")
    networks: list[NetworkReport] = Field(
        default_factory=list, description="Per-network reports"
    )
    alerts: list[AlertCandidate] = Field(
        default_factory=list, description="Alerts emitted this tick"
    )
    state_reset: bool = Field(default=False, description="Whether AlertState reset")

    @property
    def evaluated(self) -> int:
        """Number of qualifying pools evaluated across networks."""
        return sum(report.qualifying for report in self.networks)

    @property
    def failed_networks(self) -> list[str]:
        """Networks that produced a network-level failure."""
        return [report.network for report in self.networks if report.error]
