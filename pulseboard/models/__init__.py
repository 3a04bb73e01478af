from .message import ChannelMessage as ChannelMessage
from .metric_sample import (
    CpuUsage as CpuUsage,
    EventLoopReading as EventLoopReading,
    MemoryUsage as MemoryUsage,
    MetricSample as MetricSample,
)
