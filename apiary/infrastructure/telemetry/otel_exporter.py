"""
OpenTelemetry Exporter for apiary

Architectural Intent:
- Turns task transition events into one trace span per deployed host
- Counts terminal outcomes as a metric
- Exports via OTLP gRPC when an endpoint is configured; otherwise the
  OpenTelemetry API's no-op providers are used and nothing leaves the process

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlparse
import logging

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from apiary.domain.events.task_events import TaskTransitionEvent
from apiary.domain.ports.event_bus_port import EventBusPort
from apiary.domain.value_objects.task_state import TaskState
from apiary.infrastructure.config import TelemetryConfig

logger = logging.getLogger(__name__)

SPAN_NAME = "apiary.deploy"
COMPLETED_COUNTER = "apiary.tasks.completed"


def validate_endpoint(endpoint: str, insecure: bool) -> None:
    parsed = urlparse(endpoint)
    is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
    if parsed.scheme == "http" and not is_localhost and not insecure:
        raise ValueError(
            f"Non-localhost HTTP endpoint '{endpoint}' requires "
            "insecure=True or use https://. "
            "Set insecure=True to explicitly allow plaintext export."
        )


@dataclass
class TelemetryProviders:
    tracer_provider: TracerProvider
    meter_provider: MeterProvider

    def shutdown(self) -> None:
        self.tracer_provider.shutdown()
        self.meter_provider.shutdown()


def configure_telemetry(config: TelemetryConfig) -> Optional[TelemetryProviders]:
    """Install global OTLP-exporting providers if an endpoint is configured."""
    if not config.endpoint:
        logger.debug("OTEL endpoint not configured, telemetry disabled")
        return None

    validate_endpoint(config.endpoint, config.insecure)

    resource = Resource(attributes={SERVICE_NAME: config.service_name})

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=config.endpoint, insecure=config.insecure)
        )
    )
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=config.endpoint, insecure=config.insecure)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(meter_provider)

    logger.info("Exporting telemetry to %s", config.endpoint)
    return TelemetryProviders(tracer_provider, meter_provider)


class DeploymentTracer:
    """Event bus subscriber recording one span per deployment task."""

    def __init__(
        self,
        tracer_provider: Optional[Any] = None,
        meter_provider: Optional[Any] = None,
    ) -> None:
        self._tracer = trace.get_tracer(__name__, tracer_provider=tracer_provider)
        meter = metrics.get_meter(__name__, meter_provider=meter_provider)
        self._completed = meter.create_counter(
            COMPLETED_COUNTER,
            unit="1",
            description="Deployment tasks that reached a terminal state",
        )
        self._spans: dict[str, Any] = {}

    def register(self, event_bus: EventBusPort) -> None:
        event_bus.subscribe(TaskTransitionEvent, self.on_transition)

    @property
    def open_spans(self) -> int:
        return len(self._spans)

    async def on_transition(self, event: TaskTransitionEvent) -> None:
        span = self._spans.get(event.task_name)
        if span is None:
            span = self._tracer.start_span(
                SPAN_NAME, attributes={"apiary.node": event.task_name}
            )
            self._spans[event.task_name] = span

        span.add_event(
            event.to_state.value,
            attributes={
                "apiary.from_state": event.from_state.value,
                "apiary.phase": event.phase.value if event.phase else "",
            },
        )

        if not event.is_terminal:
            return

        phase = event.phase.value if event.phase else ""
        span.set_attribute("apiary.phase", phase)
        if event.to_state is TaskState.FAILED:
            span.set_status(Status(StatusCode.ERROR, event.cause or ""))
        else:
            span.set_status(Status(StatusCode.OK))
        span.end()
        del self._spans[event.task_name]

        self._completed.add(1, {"result": event.to_state.value, "phase": phase})
