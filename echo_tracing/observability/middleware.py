from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from opentelemetry import trace
from opentelemetry.propagators.textmap import TextMapPropagator
from starlette.datastructures import Headers


class RequestContextMiddleware:
    """Per-request log context plus one ``http_request`` access record.

    When the caller sent a trace context, its trace id is bound for the whole
    request, so access records of untraced routes (health checks) can still be
    joined with the caller's trace.
    """

    def __init__(self, app: Callable[..., Any], propagator: TextMapPropagator) -> None:
        self.app = app
        self.propagator = propagator

    def _caller_trace_id(self, scope: dict[str, Any]) -> str | None:
        context = self.propagator.extract(carrier=Headers(scope=scope))
        span_context = trace.get_current_span(context).get_span_context()
        if not span_context.is_valid:
            return None
        return trace.format_trace_id(span_context.trace_id)

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)
        trace_id = self._caller_trace_id(scope)
        if trace_id is not None:
            structlog.contextvars.bind_contextvars(trace_id=trace_id)

        access_log = structlog.get_logger("access").bind(
            method=scope.get("method"),
            path=scope.get("path"),
        )
        start = perf_counter()
        status_code = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            access_log.info(
                "http_request",
                status_code=status_code,
                elapsed_ms=round((perf_counter() - start) * 1000.0, 2),
            )
            structlog.contextvars.clear_contextvars()
