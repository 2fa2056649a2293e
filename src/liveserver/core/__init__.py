"""
Networking core: one listening server instance and its connections.

    http_server.py   HTTPServer (bind, keep-alive loop, close)
    connection.py    Connection over an asyncio stream pair
    registry.py      ConnectionRegistry (destroyed on every stop)
"""

from .connection import Connection, ConnectionState
from .http_server import HTTPServer
from .registry import ConnectionRegistry

__all__ = [
    "Connection",
    "ConnectionState",
    "ConnectionRegistry",
    "HTTPServer",
]
