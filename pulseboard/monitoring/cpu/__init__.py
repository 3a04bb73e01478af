from .process_stats import (
    ProcessStat as ProcessStat,
    ProcessStats as ProcessStats,
)
