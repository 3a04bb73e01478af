import os
import tracemalloc

import psutil

from pulseboard.models import MemoryUsage

_process: psutil.Process | None = None


def read_memory() -> MemoryUsage:
    """
    Current memory usage of this process.

    While ``tracemalloc`` is tracing, the heap figures are the traced
    Python allocations (current and peak). Otherwise the heap is the
    process address space: resident bytes used out of virtual bytes
    reserved.
    """
    global _process

    if _process is None or _process.pid != os.getpid():
        _process = psutil.Process(os.getpid())

    mem_info = _process.memory_info()

    if tracemalloc.is_tracing():
        heap_used, heap_total = tracemalloc.get_traced_memory()

    else:
        heap_used, heap_total = mem_info.rss, mem_info.vms

    return MemoryUsage(
        heap_used=heap_used,
        heap_total=heap_total,
        rss=mem_info.rss,
        system_total=psutil.virtual_memory().total,
    )
