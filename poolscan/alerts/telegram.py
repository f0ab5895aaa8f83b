"""Telegram notifier for pool alerts."""

import httpx
import structlog

from ..core.interfaces import Notifier
from ..core.types import AlertCandidate

logger = structlog.get_logger(__name__)


def _usd(value: float) -> str:
    return f"${value:,.0f}"


def format_alert(candidate: AlertCandidate) -> str:
    """Render an alert candidate as a Telegram Markdown message."""
    pool = candidate.pool
    lines = [
        "🔥 *POOL ALPHA ALERT* 🔥",
        "",
        f"*Token:* {pool.symbol or pool.name}",
        f"*Network:* {pool.network.upper()}",
        f"*Hype Score:* {candidate.hype_score}/100",
        f"*Trust Score:* {candidate.trust_score}/100",
        "",
        "*Metrics:*",
        f"- Price: ${pool.price_usd:.8f}",
        f"- Liq: {_usd(pool.reserve_usd)}",
        f"- Vol 24h: {_usd(pool.volume_24h_usd)}",
        f"- Txs (1h): {pool.transactions_1h}",
    ]

    if candidate.issues:
        lines += ["", "*Issues:*"] + [f"- {issue}" for issue in candidate.issues]

    lines += [
        "",
        "*Links:*",
        f"- [DexScreener](https://dexscreener.com/{pool.network}/{pool.address})",
    ]
    if pool.twitter:
        lines.append(f"- [Twitter](https://twitter.com/{pool.twitter})")
    if pool.telegram:
        lines.append(f"- [Telegram]({pool.telegram})")
    if pool.website:
        lines.append(f"- [Website]({pool.website})")

    return "\n".join(lines)


class LogNotifier(Notifier):
    """Notifier that only logs alerts, for when Telegram is not configured."""

    async def notify(self, candidate: AlertCandidate) -> bool:
        """Log the alert."""
        logger.info(
            "Alert (log only)",
            network=candidate.pool.network,
            address=candidate.pool.address,
            symbol=candidate.pool.symbol,
            hype_score=candidate.hype_score,
            trust_score=candidate.trust_score,
        )
        return True


class TelegramNotifier(Notifier):
    """Telegram-based notifier implementation."""

    def __init__(
        self,
        bot_token: str,
        chat_ids: list[int],
        session: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Telegram notifier.

        Args:
            bot_token: Telegram bot token
            chat_ids: Chat IDs to send alerts to
            session: Optional HTTP session for requests
        """
        self.bot_token = bot_token
        self.chat_ids = chat_ids
        self.session = session or httpx.AsyncClient(timeout=10.0)
        self._owns_session = session is None
        self.base_url = f"https://api.telegram.org/bot{bot_token}"

        logger.info("Telegram notifier initialized", chat_count=len(chat_ids))

    async def notify(self, candidate: AlertCandidate) -> bool:
        """Send an alert to every configured chat.

        Args:
            candidate: Alert to deliver

        Returns:
            True if at least one chat accepted the message
        """
        if not self.chat_ids:
            logger.warning("No chats configured, skipping alert")
            return False

        message = format_alert(candidate)
        success_count = 0
        for chat_id in self.chat_ids:
            try:
                await self._send_message(chat_id, message)
                success_count += 1
                logger.debug("Alert sent to chat", chat_id=chat_id)
            except Exception as e:
                logger.error("Failed to send alert to chat", chat_id=chat_id, error=str(e))

        logger.info(
            "Alert push completed",
            address=candidate.pool.address,
            total_chats=len(self.chat_ids),
            success_count=success_count,
        )
        return success_count > 0

    async def _send_message(self, chat_id: int, text: str) -> None:
        """Send message to specific chat ID.

        Args:
            chat_id: Telegram chat ID
            text: Message text
        """
        url = f"{self.base_url}/sendMessage"
        data = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }

        response = await self.session.post(url, json=data)
        response.raise_for_status()

        result = response.json()
        if not result.get("ok"):
            raise RuntimeError(
                f"Telegram API error: {result.get('description', 'Unknown error')}"
            )

    async def close(self) -> None:
        """Close the notifier and cleanup resources."""
        if self._owns_session:
            await self.session.aclose()
        logger.info("Telegram notifier closed")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
