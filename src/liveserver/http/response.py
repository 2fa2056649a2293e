"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

Handlers and middleware return an ``HTTPResponse``; the Connection
serializes it with ``to_bytes()``.

    Handler returns          to_bytes()              Connection writes
    HTTPResponse    ─────►   serializes    ─────►    raw bytes

``ResponseBuilder`` is the fluent way to construct one:

    return (ResponseBuilder()
        .status(HTTPStatus.CREATED)
        .json({"id": 1})
        .build())

=============================================================================
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from http import HTTPStatus as _StdStatus
from typing import Any, Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """An HTTP response waiting to be serialized."""

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def to_bytes(self, server_name: str = "liveserver", include_body: bool = True) -> bytes:
        """
        Serialize for the wire.

        Content-Length, Date and Server are filled in when the handler did
        not set them. ``include_body=False`` is used for HEAD requests: the
        headers still describe the body that a GET would have returned.
        """
        response_headers = dict(self.headers)
        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())
        lines.append("")
        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"

        return header_bytes + self.body if include_body else header_bytes


class ResponseBuilder:
    """Fluent builder for ``HTTPResponse``."""

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        return self.content_type(content_type).body(text)

    def html(self, html: str) -> "ResponseBuilder":
        return self.text(html, "text/html; charset=utf-8")

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        payload = json.dumps(data, indent=2 if pretty else None, default=str)
        return self.text(payload, "application/json; charset=utf-8")

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        return self.header("Location", location)

    def close_connection(self) -> "ResponseBuilder":
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        return HTTPResponse(status=self._status, headers=self._headers, body=self._body)


def reason_phrase(status: int) -> str:
    """Reason phrase for any integer status, known or not."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        pass
    try:
        return _StdStatus(status).phrase
    except ValueError:
        return "Unknown"


def format_http_date(dt: datetime) -> str:
    """RFC 7231 IMF-fixdate: "Sun, 06 Nov 1994 08:49:37 GMT"."""
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """200 OK; dict/list bodies become JSON."""
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or "text/plain; charset=utf-8")
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)
    return builder.build()


def not_found(message: str = "Not Found") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).json({"error": message}).build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .json({"error": "Method Not Allowed", "allowed": allowed_methods})
        .build())


def error_response(status: int, message: str) -> HTTPResponse:
    """JSON error body used by the connection loop for protocol errors."""
    return (ResponseBuilder()
        .status(status)
        .json({"error": message})
        .close_connection()
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).json({"error": message}).build()
