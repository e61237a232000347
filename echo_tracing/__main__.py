from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from echo_tracing.config import get_settings
from echo_tracing.exceptions import ExporterConfigError, ServerError
from echo_tracing.main import create_app
from echo_tracing.observability.logging import configure_logging, level_from_name
from echo_tracing.observability.tracing import setup_tracing
from echo_tracing.server import LifecycleController


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Echo service with OpenTelemetry tracing")
    parser.add_argument("--host", default=settings.listen_host, help="Address to bind")
    parser.add_argument("--port", type=int, default=settings.listen_port, help="Port to bind")
    parser.add_argument(
        "--shutdown-timeout",
        type=float,
        default=settings.shutdown_timeout_seconds,
        help="Seconds to wait for in-flight requests on interrupt",
    )
    args = parser.parse_args()

    configure_logging(level_from_name(settings.log_level))
    logger = structlog.get_logger("main")

    try:
        telemetry = setup_tracing(settings)
    except ExporterConfigError as exc:
        logger.error("span_exporter_init_failed", error=str(exc))
        sys.exit(1)

    controller = LifecycleController(
        create_app(telemetry),
        telemetry,
        host=args.host,
        port=args.port,
        shutdown_timeout=args.shutdown_timeout,
    )

    try:
        asyncio.run(controller.run())
    except ServerError as exc:
        logger.error("server_error", error=str(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
