from __future__ import annotations

from fastapi import Request

from echo_tracing.observability.tracing import Telemetry


def get_telemetry(request: Request) -> Telemetry:
    return request.app.state.telemetry
