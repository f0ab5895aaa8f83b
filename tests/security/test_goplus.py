"""Tests for GoPlus security checks."""

import asyncio

import httpx
import pytest
import respx

from poolscan.security.goplus import (
    NEUTRAL_TRUST_SCORE,
    GoPlusSecurityChecker,
    score_token_security,
)

BASE_URL = "https://api.gopluslabs.io/api/v1"
TOKEN = "0xAbC0000000000000000000000000000000000001"


class TestScoring:
    """Test trust score derivation."""

    def test_clean_token(self):
        """Test a token with no issues."""
        result = score_token_security(
            {"is_honeypot": "0", "buy_tax": "0.01", "sell_tax": "0.02", "is_mintable": "0"}
        )

        assert result.trust_score == 100
        assert result.issues == []
        assert result.raw["buy_tax"] == "0.01"

    def test_honeypot(self):
        """Test the honeypot penalty."""
        result = score_token_security({"is_honeypot": "1"})

        assert result.trust_score == 20
        assert result.issues == ["Honeypot detected"]

    def test_high_tax(self):
        """Test the tax penalty and its message."""
        result = score_token_security({"buy_tax": "0.05", "sell_tax": "0.25"})

        assert result.trust_score == 80
        assert result.issues == ["High tax: B:5.0% S:25.0%"]

    def test_moderate_tax_is_not_penalized(self):
        """Test that taxes under 10% are not penalized."""
        result = score_token_security({"buy_tax": "0.08", "sell_tax": "0.09"})

        assert result.trust_score == 100

    def test_mintable(self):
        """Test the mint penalty for EVM and Solana record shapes."""
        assert score_token_security({"is_mintable": "1"}).trust_score == 85
        assert score_token_security({"mintable": {"status": "1"}}).trust_score == 85
        assert score_token_security({"mintable": {"status": "0"}}).trust_score == 100

    def test_penalties_accumulate(self):
        """Test that all penalties apply together and the score floors at zero."""
        result = score_token_security(
            {"is_honeypot": "1", "buy_tax": "0.5", "sell_tax": "0.5", "is_mintable": "1"}
        )

        assert result.trust_score == 0
        assert len(result.issues) == 3

    def test_unparseable_tax(self):
        """Test that garbage tax values count as zero."""
        assert score_token_security({"buy_tax": "", "sell_tax": "n/a"}).trust_score == 100


class TestGoPlusSecurityChecker:
    """Test GoPlus checker."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_evm_check(self):
        """Test an EVM audit keyed by lower-cased address."""
        route = respx.get(f"{BASE_URL}/token_security/8453").mock(
            return_value=httpx.Response(
                200,
                json={
                    "code": 1,
                    "message": "OK",
                    "result": {TOKEN.lower(): {"is_honeypot": "0", "is_mintable": "1"}},
                },
            )
        )

        checker = GoPlusSecurityChecker()
        try:
            result = await checker.check_security("base", TOKEN)
        finally:
            await checker.close()

        assert route.calls[0].request.url.params["contract_addresses"] == TOKEN
        assert result.trust_score == 85
        assert result.issues == ["Mint function enabled"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_solana_check(self):
        """Test that Solana uses its dedicated endpoint."""
        mint = "PepeMint1111111111111111111111111111111"
        route = respx.get(f"{BASE_URL}/solana/token_security").mock(
            return_value=httpx.Response(
                200,
                json={"code": 1, "result": {mint: {"mintable": {"status": "0"}}}},
            )
        )

        checker = GoPlusSecurityChecker()
        try:
            result = await checker.check_security("solana", mint)
        finally:
            await checker.close()

        assert route.called
        assert result.trust_score == 100

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_data(self):
        """Test the neutral result when GoPlus has no record."""
        respx.get(f"{BASE_URL}/token_security/56").mock(
            return_value=httpx.Response(200, json={"code": 1, "result": {}})
        )

        checker = GoPlusSecurityChecker()
        try:
            result = await checker.check_security("bsc", TOKEN)
        finally:
            await checker.close()

        assert result.trust_score == NEUTRAL_TRUST_SCORE
        assert result.issues == ["No data found"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_failure_is_neutral(self):
        """Test that transport failures never raise."""
        respx.get(f"{BASE_URL}/token_security/1").mock(
            return_value=httpx.Response(500)
        )

        checker = GoPlusSecurityChecker()
        try:
            result = await checker.check_security("eth", TOKEN)
        finally:
            await checker.close()

        assert result.trust_score == 50
        assert result.issues == ["Audit failed"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_code_is_neutral(self):
        """Test that a non-success GoPlus code is treated as a failure."""
        respx.get(f"{BASE_URL}/token_security/1").mock(
            return_value=httpx.Response(
                200, json={"code": 4029, "message": "too many requests", "result": {}}
            )
        )

        checker = GoPlusSecurityChecker()
        try:
            result = await checker.check_security("eth", TOKEN)
        finally:
            await checker.close()

        assert result.issues == ["Audit failed"]

    @pytest.mark.asyncio
    async def test_timeout_is_neutral(self):
        """Test that a slow audit resolves to the neutral score."""

        async def slow_get(*args, **kwargs):
            await asyncio.sleep(1.0)

        session = httpx.AsyncClient()
        session.get = slow_get
        checker = GoPlusSecurityChecker(session=session, timeout=0.05)

        result = await checker.check_security("eth", TOKEN)

        assert result.trust_score == NEUTRAL_TRUST_SCORE
        assert result.issues == ["Audit failed"]
        await session.aclose()
