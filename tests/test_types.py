"""Tests for core data types."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from poolscan.core.raw import NetworkListing, PoolDocument, PoolPage, RawPool, RawToken
from poolscan.core.types import (
    AlertCandidate,
    Criteria,
    NetworkReport,
    Pool,
    ScoredPool,
    SecurityResult,
    TickReport,
)


def _pool(**overrides) -> Pool:
    data = {
        "id": "solana_PoolAddr111",
        "network": "solana",
        "address": "PoolAddr111",
        "name": "PEPE / SOL",
        "symbol": "PEPE",
    }
    data.update(overrides)
    return Pool(**data)


def test_pool_defaults() -> None:
    """Test Pool creation with defaults."""
    pool = _pool()

    assert pool.price_usd == 0.0
    assert pool.reserve_usd == 0.0
    assert pool.volume_24h_usd == 0.0
    assert pool.market_cap_usd == 0.0
    assert pool.transactions_1h == 0
    assert pool.created_at is None
    assert pool.twitter is None
    assert pool.key == ("solana", "PoolAddr111")


def test_pool_is_immutable() -> None:
    """Test that Pool cannot be mutated in place."""
    pool = _pool(reserve_usd=1000.0)

    with pytest.raises(ValidationError):
        pool.reserve_usd = 2000.0


def test_pool_rejects_negative_values() -> None:
    """Test Pool invariants on numeric fields."""
    with pytest.raises(ValidationError):
        _pool(reserve_usd=-1.0)

    with pytest.raises(ValidationError):
        _pool(transactions_1h=-5)

    with pytest.raises(ValidationError):
        _pool(address="")


def test_pool_vol_mc_ratio_floors_market_cap() -> None:
    """Test that a zero market cap is treated as 1 in the ratio only."""
    pool = _pool(volume_24h_usd=500.0, market_cap_usd=0.0)

    assert pool.vol_mc_ratio == 500.0
    assert pool.market_cap_usd == 0.0

    pool = _pool(volume_24h_usd=500.0, market_cap_usd=1000.0)
    assert pool.vol_mc_ratio == 0.5


def test_pool_age_hours() -> None:
    """Test pool age computation."""
    now = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
    pool = _pool(created_at=now - timedelta(hours=3))

    assert pool.age_hours(now) == pytest.approx(3.0)
    assert _pool().age_hours(now) is None


def test_scored_pool_bounds() -> None:
    """Test ScoredPool score validation."""
    scored = ScoredPool(pool=_pool(), hype_score=42)
    assert scored.hype_score == 42

    with pytest.raises(ValidationError):
        ScoredPool(pool=_pool(), hype_score=101)


def test_security_result_and_alert_candidate() -> None:
    """Test SecurityResult and AlertCandidate creation."""
    result = SecurityResult(trust_score=85, issues=["Mint function enabled"])
    assert result.raw is None

    candidate = AlertCandidate(
        pool=_pool(), hype_score=90, trust_score=result.trust_score, issues=result.issues
    )
    assert candidate.detected_at.tzinfo is not None
    assert candidate.issues == ["Mint function enabled"]

    with pytest.raises(ValidationError):
        SecurityResult(trust_score=120)


def test_criteria_defaults() -> None:
    """Test Criteria defaults."""
    criteria = Criteria()

    assert criteria.min_liquidity == 5000.0
    assert criteria.min_vol_mc_ratio == 0.15
    assert criteria.min_tx_1h == 50


def test_tick_report_summaries() -> None:
    """Test TickReport derived properties."""
    report = TickReport(
        started_at=datetime.now(UTC),
        networks=[
            NetworkReport(network="solana", qualifying=3),
            NetworkReport(network="base", error="All 10 pages failed"),
        ],
    )

    assert report.evaluated == 3
    assert report.failed_networks == ["base"]


def test_raw_pool_related_id() -> None:
    """Test relationship lookups on raw pools."""
    raw = RawPool.model_validate(
        {
            "id": "solana_PoolAddr111",
            "type": "pool",
            "attributes": {"name": "PEPE / SOL"},
            "relationships": {
                "base_token": {"data": {"id": "solana_TokenAddr111", "type": "token"}},
                "dex": {"data": None},
            },
        }
    )

    assert raw.related_id("base_token") == "solana_TokenAddr111"
    assert raw.related_id("dex") is None
    assert raw.related_id("quote_token") is None


def test_included_resources_are_discriminated() -> None:
    """Test that included records parse into typed resources by type."""
    page = PoolPage.model_validate(
        {
            "pools": [],
            "included": [
                {"id": "solana_Tok", "type": "token", "attributes": {"symbol": "PEPE"}},
                {"id": "raydium", "type": "dex", "attributes": {"name": "Raydium"}},
            ],
        }
    )

    assert isinstance(page.included[0], RawToken)
    assert page.tokens() == {"solana_Tok": page.included[0]}


def test_pool_document_base_token() -> None:
    """Test base token matching on single pool documents."""
    document = PoolDocument.model_validate(
        {
            "pool": {
                "id": "base_0xpool",
                "relationships": {
                    "base_token": {"data": {"id": "base_0xtoken", "type": "token"}}
                },
            },
            "included": [{"id": "base_0xtoken", "type": "token"}],
        }
    )

    assert document.base_token() is not None
    assert document.base_token().id == "base_0xtoken"


def test_network_listing_all_failed() -> None:
    """Test NetworkListing failure summary."""
    listing = NetworkListing(network="base", pages_requested=2, failed_pages=[1, 2])
    assert listing.all_failed is True

    listing = NetworkListing(network="base", pages_requested=2, failed_pages=[2])
    assert listing.all_failed is False
