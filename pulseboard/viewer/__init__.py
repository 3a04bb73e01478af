from .metrics_provider import MetricsProvider as MetricsProvider
from .rolling_window import (
    MetricsWindow as MetricsWindow,
    RollingWindow as RollingWindow,
)
from .utils import percent_used as percent_used
