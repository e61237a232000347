"""Observability helpers: OpenTelemetry tracing bootstrap, structlog JSON logging,
and a request-context middleware that correlates access logs per request.
"""
