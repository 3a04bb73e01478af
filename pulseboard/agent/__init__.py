from .telemetry_agent import (
    ERROR_EVENT as ERROR_EVENT,
    METRICS_EVENT as METRICS_EVENT,
    TelemetryAgent as TelemetryAgent,
    create_agent as create_agent,
)
