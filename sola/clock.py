"""Active-day tracking and the periodic day-change watcher."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Optional

log = logging.getLogger(__name__)

DayCallback = Callable[[str], Awaitable[None]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Clock:
    """Derives the canonical ``YYYY-MM-DD`` day from wall-clock time.

    ``poll`` compares against the last emitted day, so however many days
    pass between two polls (e.g. the machine slept), a single change is
    reported.
    """

    def __init__(
        self,
        interval: float = 60.0,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.interval = interval
        self._now = now or _utc_now
        self.current = self.today()

    def today(self) -> str:
        return self._now().date().isoformat()

    def poll(self) -> Optional[str]:
        """Return the new day if it changed since the last emission."""
        day = self.today()
        if day == self.current:
            return None
        log.info("Day changed: %s -> %s", self.current, day)
        self.current = day
        return day

    async def run(self, on_change: DayCallback) -> None:
        """Poll forever, awaiting ``on_change`` for every new day."""
        while True:
            await asyncio.sleep(self.interval)
            day = self.poll()
            if day is not None:
                await on_change(day)

    @contextlib.asynccontextmanager
    async def watching(self, on_change: DayCallback) -> AsyncIterator[Clock]:
        """Run the poller for the duration of the block; always release it."""
        task = asyncio.create_task(self.run(on_change))
        try:
            yield self
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
