"""
=============================================================================
CONNECTION REGISTRY
=============================================================================

Tracks every open client connection of one server instance so stop() can
terminate them. Closing the listening socket only stops *new* connections;
browsers hold keep-alive connections open for seconds, and without
tracking them a restart would wait on idle clients (or leave them talking
to a dead pipeline).

    register(conn)   → id, and arrange for unregister on close
    unregister(id)   → idempotent
    destroy_all()    → abort everything, wait until the registry is empty

    ┌──────────────┐  accept   ┌──────────────────┐  close/abort
    │  transport   │ ────────► │ {0: conn, 1: ..} │ ───────────► removed
    └──────────────┘           └──────────────────┘

Ids come from a monotonically increasing counter and are never reused
within one registry.

=============================================================================
"""

import asyncio
import itertools
import logging
from typing import Dict, Iterator, Protocol


logger = logging.getLogger(__name__)


class Closeable(Protocol):
    def abort(self) -> None: ...

    def on_close(self, callback) -> None: ...


class ConnectionRegistry:
    """Open connections of one server instance, keyed by id."""

    def __init__(self):
        self._connections: Dict[int, Closeable] = {}
        self._ids = itertools.count()
        self._empty = asyncio.Event()
        self._empty.set()

    def register(self, connection: Closeable) -> int:
        """Add ``connection``; it removes itself once its close is observed."""
        connection_id = next(self._ids)
        self._connections[connection_id] = connection
        self._empty.clear()
        connection.on_close(lambda: self.unregister(connection_id))
        return connection_id

    def unregister(self, connection_id: int) -> None:
        self._connections.pop(connection_id, None)
        if not self._connections:
            self._empty.set()

    async def destroy_all(self) -> None:
        """
        Forcibly terminate every registered connection.

        Returns once each one has been observed closed, so the registry is
        empty on return.
        """
        if self._connections:
            logger.debug(f"Destroying {len(self._connections)} open connections")
        for connection in list(self._connections.values()):
            connection.abort()
        await self._empty.wait()

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._connections))

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections
