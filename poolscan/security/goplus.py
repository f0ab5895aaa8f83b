"""GoPlus token security audit."""

import asyncio
from typing import Any

import httpx
import structlog

from ..core.interfaces import SecurityChecker
from ..core.types import SecurityResult

logger = structlog.get_logger(__name__)

NEUTRAL_TRUST_SCORE = 50

CHAIN_IDS = {
    "solana": "solana",
    "eth": "1",
    "bsc": "56",
    "polygon_pos": "137",
    "base": "8453",
    "arbitrum": "42161",
    "avax": "43114",
}

_FLAT_SECURITY_FIELDS = ("is_honeypot", "is_mintable", "buy_tax", "sell_tax", "mintable")


def _flag(value: Any) -> bool:
    """GoPlus flags are "1"/"0" strings, or {"status": "1"} on Solana."""
    if isinstance(value, dict):
        value = value.get("status")
    return str(value) == "1"


def _tax_pct(value: Any) -> float:
    try:
        return float(value or 0) * 100
    except (TypeError, ValueError):
        return 0.0


def score_token_security(data: dict[str, Any]) -> SecurityResult:
    """Derive a trust score from a GoPlus token security record.

    Args:
        data: Token security record

    Returns:
        SecurityResult starting from 100 with penalties applied
    """
    score = 100
    issues: list[str] = []

    if _flag(data.get("is_honeypot")):
        score -= 80
        issues.append("Honeypot detected")

    buy_tax = _tax_pct(data.get("buy_tax"))
    sell_tax = _tax_pct(data.get("sell_tax"))
    if buy_tax > 10 or sell_tax > 10:
        score -= 20
        issues.append(f"High tax: B:{buy_tax:.1f}% S:{sell_tax:.1f}%")

    if _flag(data.get("is_mintable")) or _flag(data.get("mintable")):
        score -= 15
        issues.append("Mint function enabled")

    return SecurityResult(trust_score=max(0, score), issues=issues, raw=data)


class GoPlusSecurityChecker(SecurityChecker):
    """Security checker backed by the GoPlus token security API."""

    def __init__(
        self,
        base_url: str = "https://api.gopluslabs.io/api/v1",
        session: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize GoPlus checker.

        Args:
            base_url: GoPlus API base URL
            session: Optional httpx client session
            timeout: Timeout in seconds for one audit
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or httpx.AsyncClient(timeout=timeout)
        self._owns_session = session is None

    def _endpoint(self, network: str) -> str:
        chain_id = CHAIN_IDS.get(network, network)
        if chain_id == "solana":
            return f"{self.base_url}/solana/token_security"
        return f"{self.base_url}/token_security/{chain_id}"

    async def _fetch(self, network: str, address: str) -> dict[str, Any]:
        response = await self.session.get(
            self._endpoint(network), params={"contract_addresses": address}
        )
        response.raise_for_status()
        return response.json()

    async def check_security(self, network: str, address: str) -> SecurityResult:
        """Audit a token contract.

        Never raises: any failure yields the neutral score with "Audit failed".

        Args:
            network: Network identifier
            address: Token contract address

        Returns:
            Security result
        """
        try:
            body = await asyncio.wait_for(
                self._fetch(network, address), timeout=self.timeout
            )
            if body.get("code") != 1:
                raise ValueError(f"GoPlus error: {body.get('message', 'unknown')}")

            data = self._select_record(body.get("result"), address)
            if data is None:
                logger.info("No security data found", network=network, address=address)
                return SecurityResult(
                    trust_score=NEUTRAL_TRUST_SCORE, issues=["No data found"]
                )

            result = score_token_security(data)
            logger.debug(
                "Security check completed",
                network=network,
                address=address,
                trust_score=result.trust_score,
                issues=result.issues,
            )
            return result

        except Exception as e:
            logger.warning(
                "Security check failed", network=network, address=address, error=str(e)
            )
            return SecurityResult(trust_score=NEUTRAL_TRUST_SCORE, issues=["Audit failed"])

    @staticmethod
    def _select_record(result: Any, address: str) -> dict[str, Any] | None:
        """Pick the record for an address out of a GoPlus result."""
        if not isinstance(result, dict) or not result:
            return None
        for key in (address, address.lower()):
            record = result.get(key)
            if isinstance(record, dict):
                return record
        if any(field in result for field in _FLAT_SECURITY_FIELDS):
            return result
        return None

    async def close(self) -> None:
        """Close the underlying session if owned."""
        if self._owns_session:
            await self.session.aclose()
