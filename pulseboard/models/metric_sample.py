from __future__ import annotations

import time

import msgspec
import orjson


class EventLoopReading(msgspec.Struct, frozen=True, rename="camel"):
    delay: float = 0
    high: float = 0

    def exceeds(self, threshold: int | float) -> bool:
        return self.delay > threshold


class MemoryUsage(msgspec.Struct, frozen=True, rename="camel"):
    heap_used: int = 0
    heap_total: int = 0
    rss: int = 0
    system_total: int = 0


class CpuUsage(msgspec.Struct, frozen=True, rename="camel"):
    utilization: float = 0


class MetricSample(msgspec.Struct, frozen=True, rename="camel"):
    """
    One timestamped bundle of event loop, memory, and CPU readings.

    Field names are snake_case in Python and camelCase on the wire
    (``eventLoop.delay``, ``mem.heapUsed``, ...).
    """

    event_loop: EventLoopReading
    mem: MemoryUsage
    cpu: CpuUsage
    timestamp: int = msgspec.field(
        default_factory=lambda: int(time.time() * 1000),
    )

    @classmethod
    def load(cls, data: bytes | str) -> MetricSample:
        return msgspec.convert(
            orjson.loads(data),
            cls,
        )

    def dump(self) -> bytes:
        return orjson.dumps(
            msgspec.to_builtins(self),
        )
