from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from echo_tracing.api.echo import router as echo_router
from echo_tracing.api.health import router as health_router
from echo_tracing.observability.middleware import RequestContextMiddleware
from echo_tracing.observability.tracing import Telemetry


NOT_FOUND_BODY = "404 page not found"


async def _plain_text_http_error(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    # Only GET is routed; a known path with another method is just not found.
    status_code = 404 if exc.status_code == 405 else exc.status_code
    body = NOT_FOUND_BODY if status_code == 404 else str(exc.detail)
    return PlainTextResponse(body, status_code=status_code)


def create_app(telemetry: Telemetry) -> FastAPI:
    """Build the ASGI app around an already-initialized telemetry handle."""

    app = FastAPI(
        title="Echo Tracing",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        # "/_ah/health/" is not the health endpoint; no trailing-slash redirects.
        redirect_slashes=False,
    )
    app.state.telemetry = telemetry
    app.add_middleware(RequestContextMiddleware, propagator=telemetry.propagator)
    app.add_exception_handler(StarletteHTTPException, _plain_text_http_error)
    app.include_router(health_router)
    app.include_router(echo_router)
    return app
