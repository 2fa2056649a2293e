"""
Unit tests for HTTP request parsing.
"""

import pytest

from liveserver.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
)


def parse_request(raw: bytes, **kwargs) -> HTTPRequest:
    return RequestParser().parse(raw, **kwargs)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/api/users"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)
        assert request.scheme == "http"

    def test_parse_scheme(self, sample_get_request: bytes):
        request = parse_request(sample_get_request, scheme="https")
        assert request.scheme == "https"

    def test_parse_headers(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.host == "localhost:4200"
        assert request.user_agent == "pytest"
        assert request.headers["accept"] == "application/json"
        assert request.is_keep_alive is True

    def test_parse_query_params(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.get_query("page") == "1"
        assert request.get_query("limit") == "10"
        assert request.get_query("missing") is None
        assert request.get_query("missing", "default") == "default"

    def test_parse_post_with_body(self, sample_post_request: bytes):
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.content_type == "application/json"
        assert request.json == {"name": "John", "email": "john@example.com"}
        assert request.is_keep_alive is False

    def test_parse_query_with_encoded_chars(self):
        raw = b"GET /search?q=hello%20world HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/search"
        assert request.get_query("q") == "hello world"

    def test_parse_invalid_method(self):
        raw = b"INVALID /path HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 405

    def test_parse_unsupported_version(self):
        raw = b"GET / HTTP/2.0\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 505

    def test_parse_invalid_request_line(self):
        raw = b"GET\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_parse_missing_headers(self):
        raw = b"GET / HTTP/1.1\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/"
        assert request.headers == {}

    def test_parse_request_too_large(self):
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_parse_incomplete_body(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 20\r\n\r\nshort"

        with pytest.raises(HTTPParseError):
            parse_request(raw)

    def test_http_version_keep_alive_defaults(self):
        request_10 = parse_request(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n")
        assert request_10.is_keep_alive is False

        request_10_ka = parse_request(b"GET / HTTP/1.0\r\nConnection: keep-alive\r\n\r\n")
        assert request_10_ka.is_keep_alive is True

        request_11 = parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n\r\n")
        assert request_11.is_keep_alive is True

    def test_content_length_handling(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 9\r\n\r\ntest body"

        request = parse_request(raw)
        assert request.body == b"test body"

    def test_repeated_headers_are_folded(self):
        raw = b"GET / HTTP/1.1\r\nAccept: text/html\r\nAccept: application/json\r\n\r\n"

        request = parse_request(raw)
        assert request.headers["accept"] == "text/html, application/json"

    def test_case_insensitive_headers(self):
        raw = b"GET / HTTP/1.1\r\nCONTENT-TYPE: text/html; charset=utf-8\r\n\r\n"
        request = parse_request(raw)

        assert request.content_type == "text/html"
        assert request.get_header("Content-Type") == "text/html; charset=utf-8"


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_first_query_value(self):
        request = HTTPRequest(
            method="GET",
            path="/",
            query_params={"tags": ["python", "http", "server"]},
        )

        assert request.get_query("tags") == "python"

    def test_invalid_json_body(self):
        request = HTTPRequest(method="POST", path="/", body=b"{not json")

        with pytest.raises(HTTPParseError):
            request.json

    def test_empty_body_json_is_none(self):
        assert HTTPRequest(method="POST", path="/").json is None
