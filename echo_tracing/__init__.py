"""HTTP echo service instrumented with OpenTelemetry tracing and structlog JSON logs."""

__version__ = "0.1.0"
