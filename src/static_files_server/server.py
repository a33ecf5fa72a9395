# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Server lifecycle - bind, serve, and shut down on interrupt.

ServerLifecycle owns the listening socket and runs a uvicorn Server on it.
uvicorn's own signal capture is disabled: the lifecycle installs handlers for
SIGINT and SIGTERM that set a one-shot stop event. The coordinator then asks
uvicorn to stop accepting and waits for in-flight requests, at most for the
grace period. Past the deadline the remaining requests are cancelled.

States::

    STARTING --bind ok--> LISTENING --signal--> SHUTTING_DOWN --drained/timeout--> STOPPED
    STARTING --bind error--> STOPPED

Usage:
    settings = ServerConfig.from_provider(load_config())
    exit_code = ServerLifecycle(settings).run()

A bind failure is logged and reported as exit code 1, without retry.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import signal
import socket
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

import uvicorn

from .application import create_app

if TYPE_CHECKING:
    from .server_config import ServerConfig
    from .types import ASGIApp

__all__ = ["ServerLifecycle", "ServerState", "HANDLED_SIGNALS", "CANCEL_TIMEOUT"]

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Time left to cancelled requests to unwind once the grace period is over
CANCEL_TIMEOUT = 1.0


class ServerState(enum.Enum):
    STARTING = "starting"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class _Server(uvicorn.Server):
    """uvicorn Server that leaves signal handling to ServerLifecycle."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class ServerLifecycle:
    """
    Coordinates start and stop of the HTTP server.

    Attributes:
        settings: Resolved server parameters.
        app: ASGI application served.
        logger: Logger for lifecycle events.
        state: Current ServerState.
        listening: Event set once the socket accepts connections.
    """

    __slots__ = (
        "settings",
        "app",
        "logger",
        "state",
        "listening",
        "_stop",
        "_server",
        "_bound_address",
    )

    def __init__(
        self,
        settings: ServerConfig,
        app: ASGIApp | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger or logging.getLogger("static_files_server")
        self.app = app if app is not None else create_app(settings, self.logger)
        self.state = ServerState.STARTING
        self.listening: asyncio.Event | None = None
        self._stop: asyncio.Event | None = None
        self._server: _Server | None = None
        self._bound_address: tuple[str, int] | None = None

    @property
    def bound_address(self) -> tuple[str, int] | None:
        """Actual (host, port) of the listening socket, None before bind."""
        return self._bound_address

    def run(self) -> int:
        """Serve until interrupted. Returns the process exit code."""
        return asyncio.run(self.serve())

    async def serve(self) -> int:
        """Bind, serve, wait for a stop request, drain. Returns the exit code."""
        self._stop = asyncio.Event()
        self.listening = asyncio.Event()
        self._set_state(ServerState.STARTING)
        address = self.settings.listen_address

        try:
            sock = self.bind()
        except OSError as e:
            self.logger.error(
                "[API] Fail to start listen and server",
                exc_info=e,
                extra={"fields": {"address": address}},
            )
            self._set_state(ServerState.STOPPED)
            return 1

        self._server = _Server(self._uvicorn_config())
        restore_signals = self._install_signal_handlers(asyncio.get_running_loop())
        try:
            self.logger.info(f"[API] HTTP serve at {address}")
            serve_task = asyncio.create_task(self._server.serve(sockets=[sock]))
            self._set_state(ServerState.LISTENING)
            self.listening.set()

            stop_task = asyncio.create_task(self._stop.wait())
            await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

            if serve_task.done():
                stop_task.cancel()
                exit_code = self._unexpected_stop(serve_task)
            else:
                exit_code = await self._shutdown(serve_task)
        finally:
            restore_signals()
            sock.close()

        self._set_state(ServerState.STOPPED)
        self.logger.info("[API] Bye")
        return exit_code

    def bind(self) -> socket.socket:
        """Create, bind and listen on the configured address.

        Raises:
            OSError: Address in use, permission denied, unknown host...
        """
        host = self.settings.host
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, self.settings.port))
            sock.listen(2048)
        except OSError:
            sock.close()
            raise
        sock.set_inheritable(True)
        host, port = sock.getsockname()[:2]
        self._bound_address = (host, port)
        return sock

    def request_shutdown(self, sig: int | None = None) -> None:
        """Ask a running server to stop. A second request forces the exit."""
        if self._stop is None:
            return
        if self._stop.is_set():
            self.logger.warning(
                "Second stop request, forcing exit",
                extra={"fields": {"signal": _signal_name(sig)}},
            )
            if self._server is not None:
                self._server.force_exit = True
            return
        self.logger.debug("Stop requested", extra={"fields": {"signal": _signal_name(sig)}})
        self._stop.set()

    async def _shutdown(self, serve_task: asyncio.Task[Any]) -> int:
        assert self._server is not None
        self._set_state(ServerState.SHUTTING_DOWN)
        self.logger.info("[API] Server is shutting down")
        self._server.should_exit = True

        grace = self.settings.grace_period.total_seconds()
        done, _ = await asyncio.wait({serve_task}, timeout=grace)
        if not done:
            in_flight = list(self._server.server_state.tasks)
            self.logger.warning(
                "Grace period elapsed, aborting in-flight requests",
                extra={"fields": {"grace_period": grace, "in_flight": len(in_flight)}},
            )
            self._server.force_exit = True
            for task in in_flight:
                task.cancel()
            serve_task.cancel()
            _, stuck = await asyncio.wait({serve_task, *in_flight}, timeout=CANCEL_TIMEOUT)
            if stuck:
                self.logger.warning(
                    "Requests ignored cancellation, leaving them behind",
                    extra={"fields": {"pending": len(stuck)}},
                )
            return 0

        if not serve_task.cancelled() and serve_task.exception() is not None:
            self.logger.error("[API] Fail to shutting down", exc_info=serve_task.exception())
        return 0

    def _unexpected_stop(self, serve_task: asyncio.Task[Any]) -> int:
        if not serve_task.cancelled() and serve_task.exception() is not None:
            self.logger.error("[API] Server stopped with an error", exc_info=serve_task.exception())
        else:
            self.logger.error("[API] Server stopped unexpectedly")
        return 1

    def _uvicorn_config(self) -> uvicorn.Config:
        return uvicorn.Config(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            interface="asgi3",
            lifespan="off",
            log_config=None,
            access_log=False,
            timeout_graceful_shutdown=self.settings.grace_period.total_seconds(),  # type: ignore[arg-type]
        )

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> Callable[[], None]:
        """Route interrupt signals to request_shutdown. Returns the undo callable."""
        installed: list[signal.Signals] = []
        previous: dict[signal.Signals, Any] = {}

        for sig in HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig)
                installed.append(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                # No loop support (Windows) or not on the main thread
                try:
                    previous[sig] = signal.signal(
                        sig,
                        lambda signum, frame: loop.call_soon_threadsafe(self.request_shutdown, signum),
                    )
                except ValueError:
                    self.logger.debug(
                        "Cannot install signal handler",
                        extra={"fields": {"signal": _signal_name(sig)}},
                    )

        def restore() -> None:
            for sig in installed:
                loop.remove_signal_handler(sig)
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        return restore

    def _set_state(self, state: ServerState) -> None:
        if state is not self.state:
            self.logger.debug(
                "Server state changed",
                extra={"fields": {"from": self.state.value, "to": state.value}},
            )
        self.state = state

    def __repr__(self) -> str:
        return f"ServerLifecycle(address={self.settings.listen_address!r}, state={self.state.value!r})"


def _signal_name(sig: int | None) -> str:
    if sig is None:
        return ""
    try:
        return signal.Signals(sig).name
    except ValueError:
        return str(sig)
