import asyncio
import socket
import time
from typing import Callable

from pulseboard.models import CpuUsage, EventLoopReading, MemoryUsage, MetricSample
from pulseboard.monitoring import ProcessStat


class FakeProcessStats:
    """
    Stand-in for ProcessStats.

    ``errors`` is consumed one entry per call: an Exception is raised,
    None means succeed. While ``gate`` is cleared, reads stay in flight.
    """

    def __init__(
        self,
        cpu: float = 60,
        errors: list[Exception | None] | None = None,
    ) -> None:
        self.cpu = cpu
        self.errors = list(errors or [])
        self.calls: list[int] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate = asyncio.Event()
        self.gate.set()

    async def stat(self, pid: int) -> ProcessStat:
        self.calls.append(pid)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)

        try:
            await self.gate.wait()

            if self.errors:
                error = self.errors.pop(0)
                if error is not None:
                    raise error

            return ProcessStat(cpu=self.cpu)

        finally:
            self.in_flight -= 1


def fake_memory() -> MemoryUsage:
    return MemoryUsage(
        system_total=20,
        rss=30,
        heap_total=40,
        heap_used=50,
    )


def make_sample(
    delay: float = 0,
    high: float = 0,
    cpu: float = 0,
    timestamp: int | None = None,
) -> MetricSample:
    extra = {} if timestamp is None else {"timestamp": timestamp}

    return MetricSample(
        event_loop=EventLoopReading(delay=delay, high=high),
        mem=fake_memory(),
        cpu=CpuUsage(utilization=cpu),
        **extra,
    )


def get_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def wait_until(
    predicate: Callable[[], bool],
    timeout: float = 3.0,
    interval: float = 0.01,
) -> bool:
    deadline = time.monotonic() + timeout

    while time.monotonic() < deadline:
        if predicate():
            return True

        await asyncio.sleep(interval)

    return predicate()
