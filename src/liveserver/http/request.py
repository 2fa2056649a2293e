"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the bytes a Connection has buffered into an ``HTTPRequest``.

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET /api/users?page=1 HTTP/1.1\\r\\n     ← request line         │
    │  Host: localhost:4200\\r\\n               ← headers              │
    │  Content-Length: 0\\r\\n                                          │
    │  \\r\\n                                   ← end of headers       │
    │  <body: exactly Content-Length bytes>                           │
    └─────────────────────────────────────────────────────────────────┘

The Connection is responsible for framing (finding the header terminator,
reading Content-Length bytes). The parser only validates and splits.

=============================================================================
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, unquote, urlparse


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status code to send back:

        400 Bad Request                 Malformed syntax
        405 Method Not Allowed          Unknown method
        413 Payload Too Large           Over max_request_size
        505 HTTP Version Not Supported  Not HTTP/1.0 or HTTP/1.1
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Headers are stored with lowercase names (they are case-insensitive per
    RFC 7230). ``path_params`` is filled in by the router; ``context`` is a
    free-form dict middleware can use to pass data down the chain.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)
    context: Dict[str, Any] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)
    scheme: str = "http"

    _body_json: Optional[Any] = field(default=None, repr=False)

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters ("application/json")."""
        value = self.headers.get("content-type")
        if not value:
            return None
        return value.split(";")[0].strip().lower()

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def json(self) -> Any:
        """Body decoded as JSON (cached). None for an empty body."""
        if self._body_json is None and self.body:
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (ValueError, UnicodeDecodeError) as e:
                raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open.

        HTTP/1.1 defaults to keep-alive, HTTP/1.0 to close; an explicit
        Connection header overrides either default.
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query_params.get(name)
        return values[0] if values else default


class RequestParser:
    """Validates and splits one framed HTTP request."""

    VALID_METHODS = frozenset(
        {"GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE", "CONNECT"}
    )

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s]+):\s*(.*?)\s*$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
        scheme: str = "http",
    ) -> HTTPRequest:
        """
        Parse raw request bytes.

        Args:
            data: Headers, the blank line, and the body.
            client_address: Peer (ip, port), for logging.
            scheme: "http" or "https", depending on the listening transport.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", "0"))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
            scheme=scheme,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, Dict[str, list[str]], str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)
        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        for line in lines:
            if not line:
                continue
            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Invalid header line: {line!r}")
            name, value = match.groups()
            name = name.lower()
            # Repeated headers are folded into one comma-separated value
            if name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value
        return headers
