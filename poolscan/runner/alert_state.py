"""Hourly de-duplication state for emitted alerts."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, tzinfo

import structlog

logger = structlog.get_logger(__name__)

AlertKey = tuple[str, str]


class AlertState:
    """Set of (network, address) keys already alerted in the current hour.

    The window starts at `reset_minute` past every hour of wall-clock time in
    `tz` (local time when `tz` is None). The whole set is cleared by the first
    `reset_if_due` call in a new window, so a boundary is never missed and
    never cleared twice.
    """

    def __init__(
        self,
        reset_minute: int = 0,
        now_fn: Callable[[], datetime] | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        """Initialize alert state.

        Args:
            reset_minute: Minute past the hour at which the window rolls over
            now_fn: Optional function returning the current time (for testing)
            tz: Timezone of the hourly window; None means local wall-clock time
        """
        if not 0 <= reset_minute <= 59:
            raise ValueError(f"reset_minute must be within 0..59, got {reset_minute}")

        self.reset_minute = reset_minute
        self.tz = tz
        self._now_fn = now_fn or (lambda: datetime.now(tz))
        self._keys: set[AlertKey] = set()
        self._lock = asyncio.Lock()
        self._window_start = self._get_window_start(self._now_fn())

    def _get_window_start(self, now: datetime) -> datetime:
        if self.tz is not None and now.tzinfo is not None:
            now = now.astimezone(self.tz)
        start = now.replace(minute=self.reset_minute, second=0, microsecond=0)
        if now.minute < self.reset_minute:
            start -= timedelta(hours=1)
        return start

    @property
    def window_start(self) -> datetime:
        """Start of the current dedup window."""
        return self._window_start

    def __len__(self) -> int:
        return len(self._keys)

    async def contains(self, key: AlertKey) -> bool:
        """Check whether a pool was already alerted in this window."""
        async with self._lock:
            return key in self._keys

    async def add(self, key: AlertKey) -> bool:
        """Insert a key, returning False if it was already present."""
        async with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    async def reset_if_due(self) -> bool:
        """Clear all keys when a new hourly window has started.

        Returns:
            True if the state was cleared
        """
        async with self._lock:
            window_start = self._get_window_start(self._now_fn())
            if window_start == self._window_start:
                return False

            cleared = len(self._keys)
            self._keys.clear()
            self._window_start = window_start

        logger.info(
            "Alert state reset for new window",
            window_start=window_start.isoformat(),
            cleared=cleared,
        )
        return True
