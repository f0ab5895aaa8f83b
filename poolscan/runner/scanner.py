"""Scan loop: discover, score, filter, de-duplicate and alert on new pools."""

import argparse
import asyncio
import json
import signal
import sys
from collections import Counter
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from ..alerts.telegram import LogNotifier, TelegramNotifier
from ..config.log import configure_logging
from ..config.settings import AppSettings, load_settings
from ..core.interfaces import Notifier, PoolDataProvider, SecurityChecker
from ..core.types import (
    AlertCandidate,
    NetworkReport,
    PoolOutcome,
    ScoredPool,
    SecurityResult,
    TickReport,
)
from ..data.fetcher import PoolFetcher
from ..data.geckoterminal import GeckoTerminalClient
from ..data.normalizer import normalize_listing, normalize_pool
from ..filters.criteria import CriteriaFilter
from ..scoring.hype import hype_score, score_pools
from ..security.goplus import NEUTRAL_TRUST_SCORE, GoPlusSecurityChecker
from .alert_state import AlertState

logger = structlog.get_logger(__name__)


class PoolScanner:
    """Pool scan loop orchestrator.

    Each tick scans every configured network in parallel. Qualifying pools not
    yet alerted in the current hourly window are checked for trust on demand;
    pools clearing both thresholds are recorded in the alert state and handed
    to the notifier through a queue.
    """

    def __init__(
        self,
        settings: AppSettings,
        provider: PoolDataProvider | None = None,
        security: SecurityChecker | None = None,
        notifier: Notifier | None = None,
        alert_state: AlertState | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the scanner with assembled components.

        Args:
            settings: Application settings
            provider: Optional pool data provider override
            security: Optional security checker override
            notifier: Optional notifier override
            alert_state: Optional alert state override
            now_fn: Optional function returning the current UTC time (for testing)
        """
        self.settings = settings
        self.running = False
        self.components = self._assemble(settings, provider, security, notifier)

        if alert_state is None:
            alert_state = AlertState(
                reset_minute=settings.reset_minute, tz=settings.reset_tz
            )
        self.alert_state = alert_state
        self.fetcher = PoolFetcher(
            self.components["provider"],
            page_count=settings.page_count,
            page_timeout=settings.page_timeout_seconds,
        )
        self.filter = CriteriaFilter(settings.criteria)

        self._now_fn = now_fn or (lambda: datetime.now(UTC))
        self._queue: asyncio.Queue[AlertCandidate] = asyncio.Queue()
        self._dispatcher: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._closed = False

        self.tick_count = 0
        self.skipped_ticks = 0
        self.last_report: TickReport | None = None

        logger.info(
            "Pool scanner initialized",
            networks=settings.networks,
            interval_seconds=settings.scan_interval_seconds,
            hype_threshold=settings.hype_threshold,
            trust_threshold=settings.trust_threshold,
        )

    def _assemble(
        self,
        settings: AppSettings,
        provider: PoolDataProvider | None,
        security: SecurityChecker | None,
        notifier: Notifier | None,
    ) -> dict[str, Any]:
        """Assemble collaborators from settings, keeping any overrides."""
        components: dict[str, Any] = {}

        if provider is None:
            provider = GeckoTerminalClient(
                base_url=settings.geckoterminal_base,
                requests_per_minute=settings.requests_per_minute,
                request_timeout=settings.page_timeout_seconds,
            )
        components["provider"] = provider

        if security is None:
            security = GoPlusSecurityChecker(
                base_url=settings.goplus_base, timeout=settings.security_timeout_seconds
            )
        components["security"] = security

        if notifier is not None:
            components["notifier"] = notifier
        elif settings.telegram_bot_token and settings.telegram_chat_ids:
            components["notifier"] = TelegramNotifier(
                bot_token=settings.telegram_bot_token,
                chat_ids=settings.telegram_chat_ids,
            )
            logger.info("Using Telegram notifier")
        else:
            components["notifier"] = LogNotifier()
            logger.info("Using log notifier (no Telegram config)")

        return components

    async def scan_network(
        self, network: str, report: NetworkReport
    ) -> list[ScoredPool]:
        """Fetch, normalize, score and filter one network's new pools.

        Args:
            network: Network identifier
            report: Report to fill in with counts

        Returns:
            Qualifying pools ranked by hype score
        """
        listing = await self.fetcher.fetch(network)
        report.fetched = len(listing.pools)
        report.failed_pages = list(listing.failed_pages)

        if listing.all_failed:
            report.error = f"All {listing.pages_requested} pages failed"
            logger.error("Network fetch failed", network=network, error=report.error)
            return []

        pools = normalize_listing(listing)
        scored = score_pools(pools, now=self._now_fn())
        qualifying = self.filter.apply(scored)

        report.normalized = len(pools)
        report.scored = len(scored)
        report.qualifying = len(qualifying)
        return qualifying

    async def _check_security(self, scored: ScoredPool) -> SecurityResult:
        """Run the security check with a timeout and a neutral fallback."""
        pool = scored.pool
        address = pool.base_token_address or pool.address
        try:
            return await asyncio.wait_for(
                self.components["security"].check_security(pool.network, address),
                timeout=self.settings.security_timeout_seconds,
            )
        except Exception as e:
            logger.warning(
                "Security check failed, using neutral score",
                network=pool.network,
                address=address,
                error=str(e) or type(e).__name__,
            )
            return SecurityResult(trust_score=NEUTRAL_TRUST_SCORE, issues=["Audit failed"])

    async def evaluate(self, scored: ScoredPool) -> tuple[PoolOutcome, AlertCandidate | None]:
        """Run one qualifying pool through the dedup and threshold gates.

        Args:
            scored: Qualifying scored pool

        Returns:
            Outcome and the emitted alert, if any
        """
        pool = scored.pool

        if await self.alert_state.contains(pool.key):
            return PoolOutcome.ALREADY_ALERTED, None

        if scored.hype_score < self.settings.hype_threshold:
            return PoolOutcome.BELOW_THRESHOLD, None

        logger.info(
            "High hype detected",
            network=pool.network,
            symbol=pool.symbol,
            address=pool.address,
            hype_score=scored.hype_score,
        )

        security = await self._check_security(scored)
        if security.trust_score < self.settings.trust_threshold:
            logger.info(
                "Pool rejected on trust",
                network=pool.network,
                address=pool.address,
                trust_score=security.trust_score,
                issues=security.issues,
            )
            return PoolOutcome.LOW_TRUST, None

        # Another evaluation may have claimed the key while the check was pending
        if not await self.alert_state.add(pool.key):
            return PoolOutcome.ALREADY_ALERTED, None

        candidate = AlertCandidate(
            pool=pool,
            hype_score=scored.hype_score,
            trust_score=security.trust_score,
            issues=security.issues,
            detected_at=self._now_fn(),
        )
        self._emit(candidate)
        return PoolOutcome.ALERTED, candidate

    async def _process_network(
        self, network: str
    ) -> tuple[NetworkReport, list[AlertCandidate]]:
        """Scan and evaluate one network, containing any failure."""
        report = NetworkReport(network=network)
        alerts: list[AlertCandidate] = []
        outcomes: Counter[str] = Counter()

        try:
            qualifying = await self.scan_network(network, report)
            for scored in qualifying:
                outcome, candidate = await self.evaluate(scored)
                outcomes[outcome.value] += 1
                if candidate is not None:
                    alerts.append(candidate)
        except Exception as e:
            report.error = str(e) or type(e).__name__
            logger.error("Network scan failed", network=network, error=report.error)

        report.outcomes = dict(outcomes)
        return report, alerts

    async def run_tick(self) -> TickReport:
        """Execute one scan tick across all configured networks."""
        report = TickReport(started_at=self._now_fn())

        results = await asyncio.gather(
            *(self._process_network(network) for network in self.settings.networks)
        )
        for network_report, alerts in results:
            report.networks.append(network_report)
            report.alerts.extend(alerts)

        report.state_reset = await self.alert_state.reset_if_due()
        report.finished_at = self._now_fn()

        self.tick_count += 1
        self.last_report = report

        logger.info(
            "Tick completed",
            tick=self.tick_count,
            networks=len(report.networks),
            evaluated=report.evaluated,
            alerts=len(report.alerts),
            failed_networks=report.failed_networks,
            state_reset=report.state_reset,
        )
        return report

    def _emit(self, candidate: AlertCandidate) -> None:
        """Hand an alert to the notifier dispatcher."""
        self._queue.put_nowait(candidate)
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.create_task(self._dispatch_alerts())

    async def _dispatch_alerts(self) -> None:
        """Deliver queued alerts; failures are logged and never retried."""
        notifier = self.components["notifier"]
        while True:
            candidate = await self._queue.get()
            try:
                delivered = await notifier.notify(candidate)
                if delivered:
                    logger.info(
                        "Alert delivered",
                        network=candidate.pool.network,
                        symbol=candidate.pool.symbol,
                        address=candidate.pool.address,
                    )
                else:
                    logger.error(
                        "Alert not delivered",
                        network=candidate.pool.network,
                        address=candidate.pool.address,
                    )
            except Exception as e:
                logger.error(
                    "Notifier failed",
                    network=candidate.pool.network,
                    address=candidate.pool.address,
                    error=str(e),
                )
            finally:
                self._queue.task_done()

    async def flush(self) -> None:
        """Wait until every queued alert has been handed to the notifier."""
        await self._queue.join()

    async def run_forever(self) -> None:
        """Run ticks at a fixed rate until stopped.

        A tick that overruns the interval causes the missed deadlines to be
        skipped; ticks never overlap.
        """
        logger.info("Starting pool scanner", networks=self.settings.networks)
        self.running = True
        self._stop_event.clear()

        loop = asyncio.get_running_loop()
        interval = self.settings.scan_interval_seconds
        next_tick = loop.time()

        try:
            while self.running:
                try:
                    await self.run_tick()
                except Exception as e:
                    logger.error("Error in scan tick", error=str(e))

                next_tick += interval
                now = loop.time()
                if now > next_tick:
                    skipped = int((now - next_tick) // interval) + 1
                    next_tick += skipped * interval
                    self.skipped_ticks += skipped
                    logger.warning(
                        "Tick overran interval, skipping missed ticks", skipped=skipped
                    )

                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(), timeout=next_tick - now
                    )
                except TimeoutError:
                    pass

        except asyncio.CancelledError:
            logger.info("Scanner cancelled")
            raise
        finally:
            await self.stop()

    def request_stop(self) -> None:
        """Stop scheduling ticks; an in-flight tick runs to completion."""
        self.running = False
        self._stop_event.set()

    async def stop(self) -> None:
        """Stop future ticks, drain pending alerts and release clients."""
        self.request_stop()
        if self._closed:
            return
        self._closed = True

        logger.info("Stopping pool scanner")

        if self._dispatcher is not None and not self._dispatcher.done():
            try:
                await asyncio.wait_for(self.flush(), timeout=10.0)
            except TimeoutError:
                logger.warning("Pending alerts dropped on shutdown", pending=self._queue.qsize())
            self._dispatcher.cancel()

        for name in ("provider", "security", "notifier"):
            close = getattr(self.components[name], "close", None)
            if close is not None:
                try:
                    await close()
                except Exception as e:
                    logger.warning("Failed to close component", component=name, error=str(e))

    def get_status(self) -> dict[str, Any]:
        """Current scanner status."""
        return {
            "running": self.running,
            "ticks": self.tick_count,
            "skipped_ticks": self.skipped_ticks,
            "alerted_pools": len(self.alert_state),
            "window_start": self.alert_state.window_start.isoformat(),
            "pending_alerts": self._queue.qsize(),
            "last_tick": self.last_report.model_dump(mode="json", exclude={"alerts"})
            if self.last_report
            else None,
        }

    async def lookup(self, network: str, address: str) -> dict[str, Any]:
        """Score a single pool on demand.

        Args:
            network: Network identifier
            address: Pool contract address

        Returns:
            Normalized pool, hype score, criteria decision and security result
        """
        document = await self.components["provider"].get_pool(network, address)
        pool = normalize_pool(document.pool, network, document.base_token())
        if pool is None:
            raise ValueError(f"Pool record for {address} has no address")

        scored = ScoredPool(pool=pool, hype_score=hype_score(pool, self._now_fn()))
        security = await self._check_security(scored)
        return {
            "pool": pool.model_dump(mode="json"),
            "hype_score": scored.hype_score,
            "criteria": self.filter.evaluate(scored).model_dump(),
            "security": security.model_dump(mode="json", exclude={"raw"}),
        }


def _parse_lookup(value: str) -> tuple[str, str]:
    network, sep, address = value.partition(":")
    if not sep or not network or not address:
        raise argparse.ArgumentTypeError("Expected NETWORK:ADDRESS")
    return network.strip().lower(), address.strip()


async def main() -> None:
    """Main entry point for the pool scanner."""
    parser = argparse.ArgumentParser(description="New pool hype scanner")
    parser.add_argument(
        "--config", default="configs/default.yaml", help="Configuration file path"
    )
    parser.add_argument(
        "--profile",
        default="dev",
        choices=["dev", "prod"],
        help="Configuration profile",
    )
    parser.add_argument(
        "--once", action="store_true", help="Run a single tick and print its report"
    )
    parser.add_argument(
        "--lookup",
        type=_parse_lookup,
        metavar="NETWORK:ADDRESS",
        help="Score a single pool and exit",
    )

    args = parser.parse_args()

    try:
        settings = load_settings(args.profile, args.config)
        configure_logging(settings.log_level, settings.log_json)
        logger.info("Settings loaded", profile=args.profile, config=args.config)

        scanner = PoolScanner(settings)

        if args.lookup:
            network, address = args.lookup
            try:
                result = await scanner.lookup(network, address)
            finally:
                await scanner.stop()
            print(json.dumps(result, indent=2, default=str))
            return

        if args.once:
            try:
                report = await scanner.run_tick()
                await scanner.flush()
            finally:
                await scanner.stop()
            print(report.model_dump_json(indent=2))
            return

        def signal_handler() -> None:
            logger.info("Received shutdown signal")
            scanner.request_stop()

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, signal_handler)

        await scanner.run_forever()

    except Exception as e:
        logger.error("Fatal error", error=str(e))
        sys.exit(1)


def cli() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
