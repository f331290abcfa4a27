"""Tests for the OpenTelemetry deployment tracer."""

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from apiary.domain.events.task_events import TaskTransitionEvent
from apiary.domain.value_objects.task_state import Phase, TaskState
from apiary.infrastructure.config import TelemetryConfig
from apiary.infrastructure.event_bus import EventBus
from apiary.infrastructure.telemetry.otel_exporter import (
    COMPLETED_COUNTER,
    SPAN_NAME,
    DeploymentTracer,
    configure_telemetry,
    validate_endpoint,
)


@pytest.fixture
def exporter():
    return InMemorySpanExporter()


@pytest.fixture
def reader():
    return InMemoryMetricReader()


@pytest.fixture
def tracer(exporter, reader):
    tracer_provider = TracerProvider()
    tracer_provider.add_span_processor(SimpleSpanProcessor(exporter))
    meter_provider = MeterProvider(metric_readers=[reader])
    return DeploymentTracer(tracer_provider=tracer_provider, meter_provider=meter_provider)


def _transition(name, from_state, to_state, phase, cause=None):
    return TaskTransitionEvent(
        task_name=name, from_state=from_state, to_state=to_state, phase=phase, cause=cause
    )


def _completed_points(reader):
    points = []
    for resource_metrics in reader.get_metrics_data().resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                if metric.name == COMPLETED_COUNTER:
                    points.extend(metric.data.data_points)
    return points


class TestValidateEndpoint:
    def test_localhost_http_allowed(self):
        validate_endpoint("http://localhost:4317", insecure=False)

    def test_remote_http_rejected(self):
        with pytest.raises(ValueError, match="insecure=True"):
            validate_endpoint("http://collector.example.com:4317", insecure=False)

    def test_remote_http_with_insecure(self):
        validate_endpoint("http://collector.example.com:4317", insecure=True)

    def test_https_allowed(self):
        validate_endpoint("https://collector.example.com:4317", insecure=False)


class TestConfigureTelemetry:
    def test_disabled_without_endpoint(self):
        assert configure_telemetry(TelemetryConfig()) is None

    def test_rejects_insecure_endpoint(self):
        with pytest.raises(ValueError):
            configure_telemetry(TelemetryConfig(endpoint="http://10.0.0.9:4317"))


class TestDeploymentTracer:
    @pytest.mark.asyncio
    async def test_successful_task_span(self, tracer, exporter, reader):
        await tracer.on_transition(
            _transition("web-1", TaskState.QUEUED, TaskState.TRANSFERRING, Phase.TRANSFER)
        )
        assert tracer.open_spans == 1
        await tracer.on_transition(
            _transition("web-1", TaskState.TRANSFERRING, TaskState.SUCCEEDED, Phase.TRANSFER)
        )

        assert tracer.open_spans == 0
        (span,) = exporter.get_finished_spans()
        assert span.name == SPAN_NAME
        assert span.attributes["apiary.node"] == "web-1"
        assert span.attributes["apiary.phase"] == "transfer"
        assert span.status.status_code is StatusCode.OK
        assert [e.name for e in span.events] == ["transferring", "succeeded"]

        (point,) = _completed_points(reader)
        assert point.value == 1
        assert point.attributes["result"] == "succeeded"

    @pytest.mark.asyncio
    async def test_failed_task_span(self, tracer, exporter):
        await tracer.on_transition(
            _transition("web-1", TaskState.QUEUED, TaskState.TRANSFERRING, Phase.TRANSFER)
        )
        await tracer.on_transition(
            _transition("web-1", TaskState.TRANSFERRING, TaskState.ACTIVATING, Phase.ACTIVATION)
        )
        await tracer.on_transition(
            _transition(
                "web-1", TaskState.ACTIVATING, TaskState.FAILED, Phase.ACTIVATION, "exit 1"
            )
        )

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code is StatusCode.ERROR
        assert span.status.description == "exit 1"
        assert span.attributes["apiary.phase"] == "activation"

    @pytest.mark.asyncio
    async def test_one_span_per_task(self, tracer, exporter):
        for name in ("a", "b"):
            await tracer.on_transition(
                _transition(name, TaskState.QUEUED, TaskState.TRANSFERRING, Phase.TRANSFER)
            )
        assert tracer.open_spans == 2
        assert exporter.get_finished_spans() == ()

    @pytest.mark.asyncio
    async def test_registered_on_event_bus(self, tracer, exporter):
        bus = EventBus()
        tracer.register(bus)
        assert bus.handler_count(TaskTransitionEvent) == 1

        await bus.publish(
            [
                _transition("web-1", TaskState.QUEUED, TaskState.TRANSFERRING, Phase.TRANSFER),
                _transition("web-1", TaskState.TRANSFERRING, TaskState.FAILED, Phase.TRANSFER, "x"),
            ]
        )

        assert len(exporter.get_finished_spans()) == 1
