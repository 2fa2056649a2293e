"""
=============================================================================
SERVER LIFECYCLE MANAGER
=============================================================================

Owns the development server: starts it, stops it, and restarts it when
the custom server module changes on disk.

    manager = ServerLifecycleManager()
    await manager.start(StartOptions(port=4200, watcher=watcher))
    # ... edit server/__init__.py → "Server restarted."
    await manager.close()

=============================================================================
STATE MACHINE
=============================================================================

    ┌─────────┐  start()  ┌──────────┐  bound   ┌───────────┐
    │ STOPPED │ ────────► │ STARTING │ ───────► │ LISTENING │
    └─────────┘           └──────────┘          └───────────┘
         ▲                     │ failure             │ stop()
         │                     ▼                     ▼
         │◄────────────── (STOPPED)            ┌──────────┐
         └──────────────────────────────────── │ STOPPING │
                     connections destroyed,    └──────────┘
                     socket closed

Never more than one server instance is bound under one manager.

=============================================================================
ONE START CYCLE
=============================================================================

    1. Load TLS material (when use_tls), fresh from disk
    2. Create a new Application
    3. Mount middleware: compression → custom server module → addons
    4. Bind; emit "listening"

=============================================================================
ONE RESTART CYCLE
=============================================================================

    watcher change/add/delete
        │
        ▼
    RestartScheduler (debounce, then one cycle at a time)
        │
        ▼
    stop()  →  module_cache.invalidate(server_module_root)  →  start cycle
        │
        ▼
    print "Server restarted.", emit "restart"

A failing restart is reported through the UI and the log; the manager
stays alive with no server bound, and the next change retries.

=============================================================================
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from .app import Application
from .config import StartOptions
from .core.http_server import HTTPServer
from .errors import BindError, InvalidStateError, RestartError, ServerError
from .events import EventEmitter
from .loader import ModuleCache, module_cache
from .pipeline import MiddlewarePipelineBuilder
from .scheduler import RestartScheduler
from .tls import TLSConfigLoader
from .ui import ConsoleUI


logger = logging.getLogger(__name__)

WATCHER_EVENTS = ("change", "add", "delete")


class ServerState(Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    LISTENING = "listening"
    STOPPING = "stopping"


class ServerLifecycleManager(EventEmitter):
    """
    Starts, stops and restarts the development server.

    Events:
        listening: A server instance bound its socket.
        restart: A restart cycle completed.
    """

    def __init__(
        self,
        ui: Optional[Any] = None,
        tls_loader: Optional[TLSConfigLoader] = None,
        pipeline_builder: Optional[MiddlewarePipelineBuilder] = None,
        cache: Optional[ModuleCache] = None,
    ):
        super().__init__()
        self._ui = ui
        self.tls_loader = tls_loader or TLSConfigLoader()
        self.module_cache = cache or module_cache
        self.pipeline_builder = pipeline_builder or MiddlewarePipelineBuilder(self.module_cache)

        self._state = ServerState.STOPPED
        self._options: Optional[StartOptions] = None
        self._server: Optional[HTTPServer] = None
        self._scheduler: Optional[RestartScheduler] = None
        self._watcher: Optional[Any] = None
        self._start_attempt: Optional["asyncio.Future[None]"] = None
        self._stop_attempt: Optional["asyncio.Future[None]"] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def options(self) -> Optional[StartOptions]:
        return self._options

    @property
    def port(self) -> Optional[int]:
        """Port actually bound, or None when no server is listening."""
        return self._server.port if self._server is not None else None

    @property
    def connections(self) -> int:
        """Open client connections of the current server instance."""
        return len(self._server.registry) if self._server is not None else 0

    @property
    def scheduler(self) -> Optional[RestartScheduler]:
        return self._scheduler

    @property
    def ui(self) -> Any:
        if self._ui is None:
            self._ui = (self._options.ui if self._options else None) or ConsoleUI()
        return self._ui

    # =========================================================================
    # START
    # =========================================================================

    async def start(self, options: StartOptions) -> None:
        """
        Start serving with ``options``.

        The options are captured for the lifetime of this manager; every
        restart reuses them.

        Raises:
            InvalidStateError: A server is already starting or running.
            ConfigurationError: Invalid options, TLS files or custom module.
            MiddlewareBuildError: An addon or the custom module failed.
            BindError: The address is in use or not permitted.
        """
        self._check_can_start()
        options.validate()

        if self._scheduler is not None:
            # A cycle from the previous start may still be queued or running
            self._scheduler.cancel()
            await self._scheduler.wait_idle()
            self._check_can_start()

        self._options = options
        self._scheduler = RestartScheduler(self._restart_cycle, options.restart_delay)
        self._subscribe(options.watcher)

        try:
            await self._start_server()
        except BaseException:
            self._unsubscribe()
            raise

        self.ui.write_line(
            f"Serving on {options.scheme}://{options.display_host}:{self.port}{options.base_path}"
        )

    def _check_can_start(self) -> None:
        if self._state is not ServerState.STOPPED or self._server is not None:
            raise InvalidStateError(f"Cannot start the server while it is {self._state.value}")

    async def _start_server(self) -> None:
        """One start cycle with the captured options."""
        options = self._options
        loop = asyncio.get_running_loop()
        self._state = ServerState.STARTING
        self._start_attempt = loop.create_future()

        try:
            ssl_context = None
            if options.use_tls:
                material = self.tls_loader.load(options.tls_key_path, options.tls_cert_path)
                ssl_context = material.create_context()

            app = Application(options.server_name)
            await self.pipeline_builder.build(app, options)

            server = HTTPServer(app, options, ssl_context)
            try:
                await server.listen()
            except OSError as e:
                logger.debug(f"Bind failed: {e}")
                raise BindError(
                    f"Could not serve on http://{options.display_host}:{options.port}. "
                    f"It is either in use or you do not have permission.",
                    host=options.host,
                    port=options.port,
                ) from e

            self._server = server
            self._state = ServerState.LISTENING
        except BaseException:
            self._state = ServerState.STOPPED
            raise
        finally:
            self._start_attempt.set_result(None)
            self._start_attempt = None

        logger.info(f"Listening on {server.scheme}://{options.display_host}:{server.port}")
        self._notify("listening")

    # =========================================================================
    # STOP
    # =========================================================================

    async def stop(self) -> None:
        """
        Stop the current server instance.

        Open connections are destroyed rather than drained. Returns
        immediately when nothing is running; waits for a start attempt
        in progress to settle first.
        """
        if self._start_attempt is not None:
            await asyncio.wait({self._start_attempt})

        if self._stop_attempt is not None:
            await asyncio.wait({self._stop_attempt})
            return

        server = self._server
        if server is None:
            return

        self._state = ServerState.STOPPING
        self._stop_attempt = asyncio.get_running_loop().create_future()
        try:
            await server.close()
        finally:
            self._server = None
            self._state = ServerState.STOPPED
            self._stop_attempt.set_result(None)
            self._stop_attempt = None

        logger.info("Server stopped")

    # =========================================================================
    # RESTART
    # =========================================================================

    def schedule_restart(self, *_args) -> None:
        """Debounced restart; used as the watcher listener."""
        if self._scheduler is not None:
            self._scheduler.schedule()

    async def restart(self) -> None:
        """
        Run a restart cycle now, after any cycle already in flight.

        Failures are reported, never raised.

        Raises:
            InvalidStateError: start() was never called.
        """
        if self._scheduler is None:
            raise InvalidStateError("Cannot restart a server that was never started")
        await self._scheduler.restart()

    async def _restart_cycle(self) -> None:
        options = self._options
        try:
            await self.stop()
            if options.server_module_root:
                self.module_cache.invalidate(options.server_module_root)
            await self._start_server()
        except Exception as e:
            message = e.message if isinstance(e, ServerError) else f"Server restart failed: {e}"
            error = RestartError(message)
            error.__cause__ = e
            logger.error(f"Restart failed: {e}")
            self.ui.write_error(error)
            return

        self.ui.write_line("")
        self.ui.write_line("Server restarted.")
        self.ui.write_line("")
        self._notify("restart")

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    async def close(self) -> None:
        """Stop watching, drop a pending restart, and stop the server."""
        self._unsubscribe()
        if self._scheduler is not None:
            self._scheduler.cancel()
            await self._scheduler.wait_idle()
        await self.stop()

    def _notify(self, event: str) -> None:
        """Emit a lifecycle event; a failing listener does not undo the transition."""
        try:
            self.emit(event)
        except Exception as e:
            logger.exception(f"{event!r} listener failed: {e}")

    # ─────────────────────────────────────────────────────────────────────
    # WATCHER
    # ─────────────────────────────────────────────────────────────────────

    def _subscribe(self, watcher: Optional[Any]) -> None:
        self._unsubscribe()
        if watcher is None:
            return
        self._watcher = watcher
        for event in WATCHER_EVENTS:
            watcher.on(event, self.schedule_restart)

    def _unsubscribe(self) -> None:
        if self._watcher is None:
            return
        for event in WATCHER_EVENTS:
            self._watcher.off(event, self.schedule_restart)
        self._watcher = None
