"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted asyncio stream pair with an HTTP-shaped API: read one
framed request, write one response, close gracefully or abort.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

A request may arrive in any number of chunks. We read until the blank
line that ends the headers, then exactly Content-Length body bytes:

    readuntil(b"\\r\\n\\r\\n")    → request line + headers
    readexactly(content_length)  → body

Anything after that stays in the StreamReader buffer for the next
keep-alive request.

=============================================================================
TWO WAYS TO CLOSE
=============================================================================

    close()   Flush, send FIN, wait for the transport to finish.
              Used when a request/response exchange ends normally.

    abort()   Drop the transport immediately (RST), discarding anything
              buffered. Used on server stop/restart, where waiting for
              idle keep-alive clients would make every restart take
              seconds.

Either way, the transport's close is observed through ``on_close()``;
that is what keeps the ConnectionRegistry in sync.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ─┐
              ▲                                                 │
              └─────────────────────────────────────────────────┘
    any state ──► CLOSING ──► CLOSED

=============================================================================
"""

import asyncio
import logging
import time
import uuid
from enum import Enum
from typing import Callable, Optional

from ..http.request import HTTPParseError


logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class Connection:
    """
    One client connection.

    Attributes:
        id: Short random id for log correlation.
        address: Peer (ip, port).
        state: Current ConnectionState.
        requests_handled: Requests read on this connection so far.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        timeout: Optional[float] = 30.0,
        keep_alive_timeout: float = 5.0,
        max_request_size: int = 10 * 1024 * 1024,
    ):
        self.reader = reader
        self.writer = writer
        self.timeout = timeout
        self.keep_alive_timeout = keep_alive_timeout
        self.max_request_size = max_request_size

        self.id = str(uuid.uuid4())[:8]
        peer = writer.get_extra_info("peername")
        self.address: tuple[str, int] = tuple(peer[:2]) if peer else ("", 0)
        self.state = ConnectionState.NEW
        self.created_at = time.time()
        self.requests_handled = 0

    @property
    def is_closing(self) -> bool:
        return self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED) or self.writer.is_closing()

    # =========================================================================
    # READING
    # =========================================================================

    async def read_request(self) -> Optional[bytes]:
        """
        Read one complete request (headers + body).

        Returns:
            The request bytes, or None when the peer went away or an idle
            keep-alive connection timed out.

        Raises:
            HTTPParseError: Headers or body exceed the configured limits.
            TimeoutError: The first request did not arrive in time.
        """
        self.state = ConnectionState.READING
        timeout = self.keep_alive_timeout if self.requests_handled else self.timeout

        try:
            headers = await asyncio.wait_for(self.reader.readuntil(HEADER_TERMINATOR), timeout)
        except asyncio.IncompleteReadError:
            return None
        except asyncio.LimitOverrunError:
            raise HTTPParseError("Request headers too large", status_code=431)
        except asyncio.TimeoutError:
            if self.requests_handled:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")
        except (ConnectionError, OSError):
            return None

        content_length = self._parse_content_length(headers)
        if len(headers) + content_length > self.max_request_size:
            raise HTTPParseError(f"Request too large: {content_length} byte body", status_code=413)

        body = b""
        if content_length:
            try:
                body = await asyncio.wait_for(self.reader.readexactly(content_length), self.timeout)
            except asyncio.IncompleteReadError:
                return None
            except asyncio.TimeoutError:
                raise TimeoutError("Request body read timeout")
            except (ConnectionError, OSError):
                return None

        self.requests_handled += 1
        return headers + body

    @staticmethod
    def _parse_content_length(headers: bytes) -> int:
        """
        Content-Length from raw headers, 0 when absent.

        Framing needs this before the parser runs.
        """
        for line in headers.split(b"\r\n"):
            name, _, value = line.partition(b":")
            if name.strip().lower() == b"content-length":
                try:
                    length = int(value.strip())
                except ValueError:
                    raise HTTPParseError("Invalid Content-Length header")
                if length < 0:
                    raise HTTPParseError("Invalid Content-Length header")
                return length
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    async def send_response(self, data: bytes) -> bool:
        """
        Write ``data`` and wait for the buffer to drain.

        Returns:
            False if the connection is gone (including after abort()).
        """
        if self.is_closing:
            return False

        self.state = ConnectionState.WRITING
        try:
            self.writer.write(data)
            await self.writer.drain()
            return True
        except (ConnectionError, OSError) as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self) -> None:
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    async def close(self) -> None:
        """Graceful close. Safe to call after abort()."""
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING
        try:
            if not self.writer.is_closing():
                self.writer.close()
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass  # Peer already gone
        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def abort(self) -> None:
        """Forcibly terminate the connection without flushing."""
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING
        self.writer.transport.abort()
        logger.debug(f"[{self.id}] Connection aborted")

    def on_close(self, callback: Callable[[], None]) -> None:
        """
        Call ``callback`` once the underlying transport is closed.

        Fires for every kind of close: peer hang-up, close(), abort().
        """
        waiter = asyncio.ensure_future(self.writer.wait_closed())

        def _closed(future: "asyncio.Future[None]") -> None:
            if not future.cancelled():
                # Peer resets surface here; the close itself is what we care about
                future.exception()
            self.state = ConnectionState.CLOSED
            callback()

        waiter.add_done_callback(_closed)
