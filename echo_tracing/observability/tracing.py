from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import structlog
from opentelemetry import propagate, trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.propagators.composite import CompositePropagator
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from echo_tracing.config import Settings
from echo_tracing.exceptions import ExporterConfigError


TRACER_NAME = "echo_tracing"


@dataclass(frozen=True)
class Telemetry:
    """Tracing handles built once at startup and shared read-only by handlers."""

    tracer_provider: TracerProvider
    tracer: trace.Tracer
    propagator: TextMapPropagator

    def shutdown(self) -> None:
        """Export whatever the batch processor still holds, then release the exporter."""

        self.tracer_provider.force_flush()
        self.tracer_provider.shutdown()


def _otlp_exporter(protocol: str) -> SpanExporter:
    # Imported lazily: only the selected transport's dependencies get loaded.
    if protocol == "http/protobuf":
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

        return OTLPSpanExporter()
    if protocol == "grpc":
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        return OTLPSpanExporter()
    raise ExporterConfigError(f"unsupported OTLP protocol {protocol!r}")


def create_span_exporter(settings: Settings) -> SpanExporter | None:
    """Build the span exporter named by ``OTEL_TRACES_EXPORTER``.

    Only the first entry of a comma-separated list is used. ``none`` returns
    None: spans are still recorded (trace ids stay valid for logs) but never
    leave the process.
    """

    name = settings.traces_exporter.split(",")[0].strip().lower() or "otlp"
    if name == "none":
        return None
    if name == "console":
        return ConsoleSpanExporter()
    if name != "otlp":
        raise ExporterConfigError(f"unsupported traces exporter {name!r}")

    try:
        return _otlp_exporter(settings.otlp_protocol.strip().lower())
    except ExporterConfigError:
        raise
    except Exception as exc:
        raise ExporterConfigError(f"failed to create otlp span exporter: {exc}") from exc


def build_telemetry(
    exporter: SpanExporter | None,
    *,
    processor_factory: Callable[[SpanExporter], SpanProcessor] = BatchSpanProcessor,
) -> Telemetry:
    provider = TracerProvider(sampler=ALWAYS_ON)
    if exporter is not None:
        provider.add_span_processor(processor_factory(exporter))

    propagator = CompositePropagator([TraceContextTextMapPropagator(), W3CBaggagePropagator()])
    return Telemetry(
        tracer_provider=provider,
        tracer=provider.get_tracer(TRACER_NAME),
        propagator=propagator,
    )


def setup_tracing(settings: Settings) -> Telemetry:
    """Create the process telemetry and register it as the OpenTelemetry globals.

    Raises ExporterConfigError when the environment names an exporter that
    cannot be built.
    """

    telemetry = build_telemetry(create_span_exporter(settings))
    trace.set_tracer_provider(telemetry.tracer_provider)
    propagate.set_global_textmap(telemetry.propagator)

    structlog.get_logger("tracing").info(
        "tracing_configured",
        exporter=settings.traces_exporter,
        otlp_protocol=settings.otlp_protocol,
    )
    return telemetry
