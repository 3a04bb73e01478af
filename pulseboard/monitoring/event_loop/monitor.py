"""
Event loop responsiveness monitor.

Measures scheduler lag by repeatedly sleeping for a tiny expected interval
and recording how much longer than expected the wakeup took. When the loop
is busy (CPU bound callbacks, GC pauses, blocking calls) wakeups arrive late
and the excess shows up as delay.
"""

import asyncio
import time

from pulseboard.models import EventLoopReading


class EventLoopMonitor:
    """
    Tracks the most recent event loop delay and a high-water mark.

    The high-water mark is relative to the previous read: every call to
    ``read_and_reset`` returns the maximum delay recorded since the last
    call and then sets it back to zero.

    Example:
        monitor = EventLoopMonitor()
        monitor.start()
        ...
        reading = monitor.read_and_reset()
        await monitor.stop()
    """

    def __init__(self, sample_interval: float = 0.01) -> None:
        self.sample_interval = sample_interval
        self._delay: float = 0
        self._high: float = 0
        self._running = False
        self._monitor_task: asyncio.Task | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def high(self) -> float:
        return self._high

    @property
    def running(self) -> bool:
        return self._running

    def record(self, delay: float):
        delay = max(delay, 0)

        self._delay = delay
        if delay > self._high:
            self._high = delay

    def read_and_reset(self) -> EventLoopReading:
        reading = EventLoopReading(
            delay=self._delay,
            high=self._high,
        )

        self._high = 0

        return reading

    def is_blocked(self, threshold: int | float) -> bool:
        return self._delay > threshold

    def start(self):
        if self._running:
            return

        self._running = True
        self._monitor_task = asyncio.create_task(self._monitor_loop())

    async def stop(self):
        self._running = False

        if self._monitor_task and not self._monitor_task.done():
            self._monitor_task.cancel()
            try:
                await self._monitor_task

            except asyncio.CancelledError:
                pass

        self._monitor_task = None

    def abort(self):
        self._running = False

        if self._monitor_task and not self._monitor_task.done():
            self._monitor_task.cancel()

        self._monitor_task = None

    async def _monitor_loop(self):
        while self._running:
            start = time.monotonic()
            await asyncio.sleep(self.sample_interval)
            elapsed = time.monotonic() - start

            # ms, matching the units of the blocked threshold
            self.record((elapsed - self.sample_interval) * 1000)
