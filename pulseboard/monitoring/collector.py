import os
from typing import Callable

from pulseboard.models import CpuUsage, MemoryUsage, MetricSample

from .cpu import ProcessStats
from .errors import CollectorBusyError, StatsCollectionError
from .event_loop import EventLoopMonitor
from .memory import read_memory


class StatsCollector:
    """
    Assembles one ``MetricSample`` per call from the event loop monitor,
    the memory reader and an asynchronous CPU read.

    Only one CPU read may be outstanding. Callers check ``busy`` before
    collecting; a call made while busy raises ``CollectorBusyError``
    rather than queueing. A failed CPU read raises ``StatsCollectionError``
    and no sample is produced.
    """

    def __init__(
        self,
        monitor: EventLoopMonitor,
        process_stats: ProcessStats | None = None,
        memory_reader: Callable[[], MemoryUsage] | None = None,
        pid: int | None = None,
    ) -> None:
        self.monitor = monitor
        self.process_stats = process_stats or ProcessStats()
        self._memory_reader = memory_reader
        self.pid = pid if pid is not None else os.getpid()
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    def read_memory(self) -> MemoryUsage:
        if self._memory_reader:
            return self._memory_reader()

        return read_memory()

    async def get_stats(self) -> MetricSample:
        if self._busy:
            raise CollectorBusyError("Err. - a CPU read is already in flight")

        self._busy = True

        try:
            stat = await self.process_stats.stat(self.pid)

        except Exception as err:
            raise StatsCollectionError(str(err), cause=err) from err

        finally:
            self._busy = False

        return MetricSample(
            event_loop=self.monitor.read_and_reset(),
            mem=self.read_memory(),
            cpu=CpuUsage(utilization=stat["cpu"]),
        )
