"""Process lifecycle: serve until interrupted, drain within a bound, flush traces.

The controller runs uvicorn and an interrupt watcher as two tasks. The
watcher only waits on an ``asyncio.Event``; OS signals are translated into
that event, and tests can set it directly.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from collections.abc import Callable, Iterator, Sequence

import structlog
import uvicorn
from fastapi import FastAPI

from echo_tracing.exceptions import ServerError
from echo_tracing.observability.tracing import Telemetry


SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class _ManagedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to LifecycleController."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def install_interrupt_handlers(
    stop: asyncio.Event,
    signals: Sequence[signal.Signals] = SHUTDOWN_SIGNALS,
) -> Callable[[], None]:
    """Set ``stop`` when any of ``signals`` arrives; returns a function that undoes it.

    Must be called from the running event loop (Unix only).
    """

    loop = asyncio.get_running_loop()
    for sig in signals:
        loop.add_signal_handler(sig, stop.set)

    def remove() -> None:
        for sig in signals:
            loop.remove_signal_handler(sig)

    return remove


class LifecycleController:
    def __init__(
        self,
        app: FastAPI,
        telemetry: Telemetry,
        *,
        host: str,
        port: int,
        shutdown_timeout: float,
    ) -> None:
        self.telemetry = telemetry
        self.address = f"{host}:{port}"
        self.server = _ManagedServer(
            uvicorn.Config(
                app,
                host=host,
                port=port,
                timeout_graceful_shutdown=shutdown_timeout,
                lifespan="off",
                access_log=False,
                # Logging is configured by configure_logging(); uvicorn must not replace it.
                log_config=None,
            )
        )

    @property
    def bound_port(self) -> int | None:
        servers = getattr(self.server, "servers", None)
        if not servers or not servers[0].sockets:
            return None
        return servers[0].sockets[0].getsockname()[1]

    async def _serve(self) -> None:
        try:
            await self.server.serve()
        except SystemExit as exc:
            # uvicorn exits the process itself when it cannot bind.
            raise ServerError(f"server on {self.address} failed to start") from exc

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Serve until ``stop`` is set (or SIGINT/SIGTERM when no event is given).

        Raises ServerError if the listener ends without a shutdown request.
        Pending spans are flushed on every exit path.
        """

        remove_handlers: Callable[[], None] | None = None
        if stop is None:
            stop = asyncio.Event()
            remove_handlers = install_interrupt_handlers(stop)

        logger = structlog.get_logger("server")
        serving = asyncio.create_task(self._serve(), name="http-server")
        watcher = asyncio.create_task(stop.wait(), name="interrupt-watcher")

        try:
            logger.info("starting_server", addr=self.address)
            done, _ = await asyncio.wait({serving, watcher}, return_when=asyncio.FIRST_COMPLETED)

            if serving in done:
                serving.result()
                raise ServerError(f"server on {self.address} stopped unexpectedly")

            logger.info("shutting_down_server")
            # uvicorn stops accepting, drains open requests, and cancels the
            # ones still running after timeout_graceful_shutdown.
            self.server.should_exit = True
            await serving
            logger.info("server_stopped")
        finally:
            for task in (watcher, serving):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
            if remove_handlers is not None:
                remove_handlers()
            self.telemetry.shutdown()
