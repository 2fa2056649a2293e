"""
=============================================================================
HTTP SERVER INSTANCE
=============================================================================

One bound listening socket plus everything that lives exactly as long as
it: the connection registry, the worker executor and the Application.
The lifecycle manager creates a fresh HTTPServer on every start and
throws it away on stop.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌───────────────────────────────────────────────────────────────────┐
    │                          event loop                               │
    │                                                                   │
    │   asyncio.start_server ──► _handle_client(reader, writer)         │
    │                               │                                   │
    │                               ▼                                   │
    │                   Connection + ConnectionRegistry                 │
    │                               │                                   │
    │                  read_request / parse / send                      │
    │                               │ run_in_executor                   │
    └───────────────────────────────┼───────────────────────────────────┘
                                    ▼
                    ┌───────────────────────────────┐
                    │ ThreadPoolExecutor            │
                    │   app.handle(request)         │
                    │   (middleware are plain sync  │
                    │    callables)                 │
                    └───────────────────────────────┘

Socket I/O stays on the loop; user middleware runs on worker threads so a
slow mock endpoint cannot stall the watcher or a pending restart.

=============================================================================
"""

import asyncio
import logging
import ssl
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from ..app import Application
from ..config import StartOptions
from ..http.request import HTTPParseError, RequestParser
from ..http.response import error_response, internal_error
from ..http.status_codes import HTTPStatus
from .connection import Connection, ConnectionState
from .registry import ConnectionRegistry


logger = logging.getLogger(__name__)

# StreamReader buffer limit; readuntil() past this means oversized headers
MAX_HEADER_SIZE = 64 * 1024


class HTTPServer:
    """
    A single listening server instance.

    Example:
        server = HTTPServer(app, options)
        await server.listen()
        ...
        await server.close()
    """

    def __init__(
        self,
        app: Application,
        options: StartOptions,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        self.app = app
        self.options = options
        self.ssl_context = ssl_context
        self.registry = ConnectionRegistry()

        self._parser = RequestParser(options.max_request_size)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._server: Optional[asyncio.AbstractServer] = None
        self._closing = False

    @property
    def scheme(self) -> str:
        return "https" if self.ssl_context is not None else "http"

    @property
    def port(self) -> Optional[int]:
        """The port actually bound (differs from options.port when it was 0)."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def listen(self) -> None:
        """
        Bind and start accepting connections.

        Raises:
            OSError: The address could not be bound.
        """
        self._executor = ThreadPoolExecutor(
            max_workers=self.options.max_workers,
            thread_name_prefix="liveserver-worker",
        )
        try:
            self._server = await asyncio.start_server(
                self._handle_client,
                host=self.options.host,
                port=self.options.port,
                ssl=self.ssl_context,
                reuse_address=True,
                limit=MAX_HEADER_SIZE,
            )
        except BaseException:
            self._executor.shutdown(wait=False)
            self._executor = None
            raise

        logger.debug(f"Listening on {self.options.display_host}:{self.port}")

    async def close(self) -> None:
        """
        Stop accepting, destroy open connections, release the socket.

        Connections are aborted rather than drained, so this completes
        promptly even with idle keep-alive clients attached.
        """
        self._closing = True
        if self._server is not None:
            self._server.close()
            await self.registry.destroy_all()
            await self._server.wait_closed()
            self._server = None
        if self._executor is not None:
            # In-flight handlers finish on their own; their connections are gone
            self._executor.shutdown(wait=False)
            self._executor = None
        logger.debug("Server instance closed")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        conn = Connection(
            reader,
            writer,
            timeout=self.options.read_timeout,
            keep_alive_timeout=self.options.keep_alive_timeout,
            max_request_size=self.options.max_request_size,
        )
        self.registry.register(conn)
        if self._closing:
            # Accepted just before close(); destroy_all() may already be past it
            conn.abort()
            return
        logger.debug(f"[{conn.id}] New connection from {conn.address[0]}:{conn.address[1]}")

        try:
            await self._process_connection(conn)
        except Exception as e:
            logger.exception(f"[{conn.id}] Connection error: {e}")
        finally:
            await conn.close()

    async def _process_connection(self, conn: Connection) -> None:
        """
        HTTP keep-alive loop.

        1. Read request from the stream
        2. Parse HTTP request
        3. Run it through the Application on a worker thread
        4. Send response
        5. If keep-alive: repeat from step 1
        """
        loop = asyncio.get_running_loop()

        while not self._closing and not conn.is_closing:
            # ─────────────────────────────────────────────────────────────
            # READ REQUEST
            # ─────────────────────────────────────────────────────────────
            try:
                raw_request = await conn.read_request()
            except HTTPParseError as e:
                await self._send_error(conn, e.status_code, str(e))
                break
            except TimeoutError:
                await self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                break

            if raw_request is None:
                break

            # ─────────────────────────────────────────────────────────────
            # PARSE REQUEST
            # ─────────────────────────────────────────────────────────────
            try:
                request = self._parser.parse(raw_request, conn.address, self.scheme)
            except HTTPParseError as e:
                await self._send_error(conn, e.status_code, str(e))
                break

            # ─────────────────────────────────────────────────────────────
            # PROCESS REQUEST (Middleware + Routes)
            # ─────────────────────────────────────────────────────────────
            conn.state = ConnectionState.PROCESSING
            if self._closing:
                break

            try:
                response = await loop.run_in_executor(self._executor, self.app.handle, request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                response = internal_error()

            # ─────────────────────────────────────────────────────────────
            # ADD CONNECTION HEADERS
            # ─────────────────────────────────────────────────────────────
            keep_alive = request.is_keep_alive and self.options.keep_alive
            if keep_alive:
                response.headers.setdefault("Connection", "keep-alive")
                response.headers.setdefault("Keep-Alive", f"timeout={int(self.options.keep_alive_timeout)}")
            else:
                response.headers["Connection"] = "close"

            # ─────────────────────────────────────────────────────────────
            # SEND RESPONSE
            # ─────────────────────────────────────────────────────────────
            data = response.to_bytes(self.options.server_name, include_body=request.method != "HEAD")
            if not await conn.send_response(data):
                break

            if not keep_alive or response.headers.get("Connection", "").lower() == "close":
                break

            conn.set_keep_alive()

    async def _send_error(self, conn: Connection, status: int, message: str) -> None:
        """Send an error for failures that happen before a handler runs."""
        response = error_response(status, message)
        await conn.send_response(response.to_bytes(self.options.server_name))
