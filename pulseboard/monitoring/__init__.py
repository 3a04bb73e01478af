from .collector import StatsCollector as StatsCollector
from .cpu import (
    ProcessStat as ProcessStat,
    ProcessStats as ProcessStats,
)
from .errors import (
    CollectorBusyError as CollectorBusyError,
    StatsCollectionError as StatsCollectionError,
)
from .event_loop import EventLoopMonitor as EventLoopMonitor
from .memory import read_memory as read_memory
