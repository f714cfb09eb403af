"""Repeating timers on the asyncio event loop."""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[object]]


class Overlap(enum.Enum):
    """What a timer does when a tick fires while the previous one still runs."""

    QUEUE = "queue"
    """Wait for the running tick, so ticks of one timer never overlap.

    At most one tick waits behind the running one; further ticks are dropped.
    """

    SKIP = "skip"
    """Drop the new tick."""

    ALLOW = "allow"
    """Run both concurrently."""


# Ticks allowed in flight (running plus waiting) before new ones are dropped
_BACKLOG_LIMITS = {Overlap.QUEUE: 2, Overlap.SKIP: 1}


class TimerHandle:
    """A running repeating timer.

    Ticks are due at ``start + n * interval`` regardless of how long earlier
    ticks took. Exceptions escaping the callback are logged and the timer
    keeps running.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: TickCallback,
        overlap: Overlap = Overlap.QUEUE,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.overlap = overlap
        self.ticks = 0
        self.skipped = 0
        self._callback = callback
        self._lock = asyncio.Lock()
        self._in_flight: set[asyncio.Task[None]] = set()
        self._loop_task: asyncio.Task[None] | None = None

    def _start(self) -> None:
        self._loop_task = asyncio.get_running_loop().create_task(
            self._run(), name=f"timer:{self.name}"
        )

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        n = 0
        while True:
            n += 1
            await asyncio.sleep(max(0.0, started + n * self.interval - loop.time()))
            self._fire()

    def _fire(self) -> None:
        limit = _BACKLOG_LIMITS.get(self.overlap)
        if limit is not None and len(self._in_flight) >= limit:
            self.skipped += 1
            logger.warning("Timer %s skipped a tick, previous tick still running", self.name)
            return
        task = asyncio.get_running_loop().create_task(self._tick())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _tick(self) -> None:
        if self.overlap is Overlap.QUEUE:
            async with self._lock:
                await self._invoke()
        else:
            await self._invoke()

    async def _invoke(self) -> None:
        self.ticks += 1
        try:
            await self._callback()
        except Exception:
            logger.exception("Timer %s tick failed", self.name)

    def cancel(self) -> None:
        """Stop the timer and cancel any tick still running."""
        if self._loop_task is not None:
            self._loop_task.cancel()
        for task in list(self._in_flight):
            task.cancel()

    async def wait_cancelled(self) -> None:
        """Wait until the timer loop and its ticks have finished cancelling."""
        tasks = [t for t in (self._loop_task, *self._in_flight) if t is not None]
        await asyncio.gather(*tasks, return_exceptions=True)


class Scheduler:
    """Owns the repeating timers of one agent.

    Must be used from inside a running event loop.
    """

    def __init__(self, overlap: Overlap = Overlap.QUEUE) -> None:
        self.overlap = overlap
        self._handles: list[TimerHandle] = []

    @property
    def handles(self) -> list[TimerHandle]:
        return list(self._handles)

    def every(
        self,
        interval_ms: float,
        callback: TickCallback,
        *,
        name: str,
        overlap: Overlap | None = None,
    ) -> TimerHandle:
        """Run ``callback`` every ``interval_ms`` milliseconds until cancelled.

        The first tick fires one interval after registration.
        """
        handle = TimerHandle(
            name, interval_ms / 1000, callback, overlap or self.overlap
        )
        handle._start()
        self._handles.append(handle)
        logger.debug("Timer %s registered every %sms", name, interval_ms)
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        """Cancel one timer and stop tracking it."""
        handle.cancel()
        if handle in self._handles:
            self._handles.remove(handle)

    async def shutdown(self) -> None:
        """Cancel every timer and wait for their tasks to finish."""
        handles, self._handles = self._handles, []
        for handle in handles:
            handle.cancel()
        for handle in handles:
            await handle.wait_cancelled()
