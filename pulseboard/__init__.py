from .agent import (
    TelemetryAgent as TelemetryAgent,
    create_agent as create_agent,
)
from .models import MetricSample as MetricSample
from .viewer import MetricsProvider as MetricsProvider
