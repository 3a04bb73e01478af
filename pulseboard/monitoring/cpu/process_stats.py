import asyncio
from typing import Dict, TypedDict

import psutil


class ProcessStat(TypedDict):
    cpu: float


class ProcessStats:
    """
    Per-process CPU readings via psutil.

    ``cpu_percent`` needs a previous call on the same ``psutil.Process``
    to measure against, so process handles are cached per pid. The first
    reading for a pid is therefore 0.
    """

    def __init__(self) -> None:
        self._processes: Dict[int, psutil.Process] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    async def stat(self, pid: int) -> ProcessStat:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        return await self._loop.run_in_executor(
            None,
            self._stat,
            pid,
        )

    def _stat(self, pid: int) -> ProcessStat:
        process = self._processes.get(pid)
        if process is None:
            process = psutil.Process(pid)
            self._processes[pid] = process

        try:
            return ProcessStat(cpu=process.cpu_percent(interval=None))

        except psutil.NoSuchProcess:
            self._processes.pop(pid, None)
            raise
