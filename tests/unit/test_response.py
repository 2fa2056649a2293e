"""
Unit tests for HTTP response building.
"""

import json
from datetime import datetime, timezone

from liveserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_http_date,
    internal_error,
    method_not_allowed,
    not_found,
    ok,
    reason_phrase,
)
from liveserver.http.status_codes import HTTPStatus


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=HTTPStatus.NOT_FOUND).status_line == "HTTP/1.1 404 Not Found"

    def test_status_line_for_unlisted_code(self):
        assert HTTPResponse(status=418).status_line == "HTTP/1.1 418 I'm a Teapot"
        assert HTTPResponse(status=599).status_line == "HTTP/1.1 599 Unknown"

    def test_to_bytes_includes_headers(self):
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: liveserver\r\n" in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_keeps_explicit_content_length(self):
        response = HTTPResponse(headers={"Content-Length": "99"}, body=b"hello")

        assert b"Content-Length: 99\r\n" in response.to_bytes()

    def test_to_bytes_without_body_for_head(self):
        response = HTTPResponse(body=b"hello world")

        result = response.to_bytes(include_body=False)

        assert b"Content-Length: 11\r\n" in result
        assert result.endswith(b"\r\n\r\n")

    def test_set_header_chaining(self):
        response = HTTPResponse().set_header("X-One", "1").set_header("X-Two", "2")

        assert response.headers == {"X-One": "1", "X-Two": "2"}

    def test_set_body_encodes_text(self):
        assert HTTPResponse().set_body("héllo").body == "héllo".encode("utf-8")


class TestResponseBuilder:
    """Tests for the fluent builder."""

    def test_json_body(self):
        response = ResponseBuilder().json({"key": "value"}).build()

        assert response.headers["Content-Type"] == "application/json; charset=utf-8"
        assert json.loads(response.body) == {"key": "value"}

    def test_html_body(self):
        response = ResponseBuilder().html("<h1>Hi</h1>").build()

        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.body == b"<h1>Hi</h1>"

    def test_redirect(self):
        response = ResponseBuilder().redirect("/new").build()
        assert response.status == HTTPStatus.FOUND
        assert response.headers["Location"] == "/new"

        response = ResponseBuilder().redirect("/new", permanent=True).build()
        assert response.status == HTTPStatus.MOVED_PERMANENTLY

    def test_close_connection(self):
        response = ResponseBuilder().close_connection().build()
        assert response.headers["Connection"] == "close"

    def test_method_chaining(self):
        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .header("X-Custom", "value")
            .json({"key": "value"})
            .build())

        assert response.status == HTTPStatus.CREATED
        assert response.headers["X-Custom"] == "value"
        assert b'"key"' in response.body


class TestConvenienceFunctions:
    """Tests for convenience response functions."""

    def test_ok(self):
        response = ok("Hello")
        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello"

        response = ok({"msg": "hello"})
        assert json.loads(response.body) == {"msg": "hello"}

    def test_ok_bytes_with_content_type(self):
        response = ok(b"\x89PNG", content_type="image/png")
        assert response.headers["Content-Type"] == "image/png"

    def test_not_found(self):
        response = not_found("Cannot GET /missing")
        assert response.status == HTTPStatus.NOT_FOUND
        assert json.loads(response.body) == {"error": "Cannot GET /missing"}

    def test_method_not_allowed(self):
        response = method_not_allowed(["GET", "POST"])
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, POST"

    def test_error_response_closes_connection(self):
        response = error_response(HTTPStatus.BAD_REQUEST, "Invalid request line")
        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.headers["Connection"] == "close"

    def test_internal_error(self):
        assert internal_error().status == HTTPStatus.INTERNAL_SERVER_ERROR


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.NOT_FOUND.phrase == "Not Found"
        assert HTTPStatus.INTERNAL_SERVER_ERROR.phrase == "Internal Server Error"
        assert HTTPStatus.HTTP_VERSION_NOT_SUPPORTED.phrase == "HTTP Version Not Supported"
        assert reason_phrase(413) == "Payload Too Large"

    def test_status_categories(self):
        assert HTTPStatus.OK.is_success
        assert HTTPStatus.NOT_FOUND.is_error
        assert HTTPStatus.INTERNAL_SERVER_ERROR.is_error
        assert not HTTPStatus.OK.is_error


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
