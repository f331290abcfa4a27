"""
apiary Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for deployment traces and outcome metrics
"""

from apiary.infrastructure.telemetry.otel_exporter import (
    DeploymentTracer,
    TelemetryProviders,
    configure_telemetry,
)

__all__ = [
    "DeploymentTracer",
    "TelemetryProviders",
    "configure_telemetry",
]
