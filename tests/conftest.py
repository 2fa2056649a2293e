"""
pytest configuration and fixtures.
"""

import asyncio
import socket
import ssl
import textwrap
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from liveserver.events import EventEmitter


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:4200\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:4200\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
        + body
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


# =============================================================================
# COLLABORATOR FAKES
# =============================================================================

class RecordingUI:
    """UI sink that remembers what it was asked to print."""

    def __init__(self):
        self.lines: List[str] = []
        self.errors: List[BaseException] = []

    def write_line(self, line: str = "") -> None:
        self.lines.append(line)

    def write_error(self, error: BaseException) -> None:
        self.errors.append(error)


class FakeWatcher(EventEmitter):
    """Watcher whose notifications are triggered by the test."""

    def touch(self, path: str = "server/__init__.py", event: str = "change") -> None:
        self.emit(event, path)


@pytest.fixture
def ui() -> RecordingUI:
    return RecordingUI()


@pytest.fixture
def watcher() -> FakeWatcher:
    return FakeWatcher()


@pytest.fixture
def server_module(tmp_path: Path) -> Callable[[str], str]:
    """
    Write a custom server package under tmp_path and return its root.

    Calling it again rewrites the package in place.
    """
    root = tmp_path / "server"

    def write(source: str, filename: str = "__init__.py") -> str:
        root.mkdir(exist_ok=True)
        (root / filename).write_text(textwrap.dedent(source))
        return str(root)

    return write


# =============================================================================
# HTTP CLIENT
# =============================================================================

async def fetch(
    port: int,
    path: str = "/",
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    host: str = "127.0.0.1",
) -> Tuple[int, Dict[str, str], bytes]:
    """
    One request over a fresh connection, read until the server closes it.

    Returns:
        (status, lowercase headers, body)
    """
    reader, writer = await asyncio.open_connection(host, port)
    request_headers = {"Host": f"{host}:{port}", "Connection": "close", **(headers or {})}
    head = f"{method} {path} HTTP/1.1\r\n" + "".join(
        f"{name}: {value}\r\n" for name, value in request_headers.items()
    )
    writer.write(head.encode("latin-1") + b"\r\n")
    await writer.drain()

    raw = await reader.read()
    writer.close()
    await writer.wait_closed()

    head_bytes, _, body = raw.partition(b"\r\n\r\n")
    lines = head_bytes.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    response_headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        response_headers[name.strip().lower()] = value.strip()
    return status, response_headers, body


async def wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``condition`` on the event loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


# =============================================================================
# TLS MATERIAL
# =============================================================================

TLS_FIXTURES = Path(__file__).parent / "fixtures" / "tls"


@pytest.fixture
def tls_files(tmp_path: Path) -> Callable[[str], Tuple[str, str]]:
    """
    Copy a self-signed key/certificate pair ("first" or "second") to
    tmp_path/ssl/server.{key,crt} and return both paths.

    Calling it again with the other name swaps the material in place.
    """
    ssl_dir = tmp_path / "ssl"

    def install(name: str = "first") -> Tuple[str, str]:
        ssl_dir.mkdir(exist_ok=True)
        key = ssl_dir / "server.key"
        cert = ssl_dir / "server.crt"
        key.write_bytes((TLS_FIXTURES / f"{name}.key").read_bytes())
        cert.write_bytes((TLS_FIXTURES / f"{name}.crt").read_bytes())
        return str(key), str(cert)

    return install


def fixture_certificate_der(name: str) -> bytes:
    """DER bytes of a fixture certificate, as a TLS peer presents it."""
    return ssl.PEM_cert_to_DER_cert((TLS_FIXTURES / f"{name}.crt").read_text())
