from __future__ import annotations

import asyncio
import re

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from opentelemetry import trace

import echo_tracing.api.convertors  # noqa: F401  (registers the nonempty_path convertor)
from echo_tracing.api.dependencies import get_telemetry
from echo_tracing.models.schemas import EchoResponse
from echo_tracing.observability.tracing import Telemetry


# Used with fullmatch: a bare ``$`` would accept a trailing newline.
ECHO_PATH = re.compile(r"/echo/(.+)")

# Stands in for downstream work; always applied.
ECHO_DELAY_SECONDS = 0.1

router = APIRouter(tags=["echo"])


@router.get("/echo/{message:nonempty_path}", response_model=EchoResponse)
async def echo(
    message: str,
    request: Request,
    telemetry: Telemetry = Depends(get_telemetry),
) -> EchoResponse:
    parent = telemetry.propagator.extract(carrier=request.headers)
    with telemetry.tracer.start_as_current_span("echo-handler", context=parent) as span:
        # scope["path"] is the decoded path as routed; request.url would drop control characters.
        match = ECHO_PATH.fullmatch(request.scope["path"])
        if match is None:
            raise HTTPException(status_code=400, detail="invalid path")
        if match.group(1) != message:
            raise HTTPException(status_code=404)
        echoed = match.group(1)

        structlog.get_logger("echo").info(
            "echo_request_received",
            message=echoed,
            trace_id=trace.format_trace_id(span.get_span_context().trace_id),
        )

        await asyncio.sleep(ECHO_DELAY_SECONDS)

    return EchoResponse(message=echoed)
