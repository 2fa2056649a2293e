"""
Unit tests for URL router.
"""

import pytest

from liveserver.http.router import Router
from liveserver.http.request import HTTPRequest
from liveserver.http.response import HTTPResponse, ResponseBuilder
from liveserver.http.status_codes import HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ResponseBuilder().json({"path": request.path}).build()


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        router = Router()
        route = router.add_route("/users", dummy_handler, method="get")

        assert len(router) == 1
        assert route.path == "/users"
        assert route.method == "GET"

    def test_match_static_path(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        router.add_route("/posts", dummy_handler, method="GET")

        match = router.match("GET", "/users")
        assert match is not None
        assert match.route.path == "/users"

        match = router.match("GET", "/posts/")
        assert match is not None
        assert match.route.path == "/posts"

    def test_match_root(self):
        router = Router()
        router.add_route("/", dummy_handler, method="GET")

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/other") is None

    def test_match_with_method(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        router.add_route("/users", dummy_handler, method="POST")

        assert router.match("GET", "/users").route.method == "GET"
        assert router.match("POST", "/users").route.method == "POST"

    def test_route_without_method_matches_any(self):
        router = Router()
        router.add_route("/any", dummy_handler)

        assert router.match("DELETE", "/any") is not None

    def test_match_dynamic_params(self):
        router = Router()
        router.add_route("/users/:id", dummy_handler, method="GET")
        router.add_route("/users/:user_id/posts/:post_id", dummy_handler, method="GET")

        match = router.match("GET", "/users/123")
        assert match.params == {"id": "123"}

        match = router.match("GET", "/users/456/posts/789")
        assert match.params == {"user_id": "456", "post_id": "789"}

    def test_match_wildcard(self):
        router = Router()
        router.add_route("/static/*path", dummy_handler, method="GET")

        match = router.match("GET", "/static/css/style.css")
        assert match is not None
        assert match.params == {"path": "css/style.css"}

    def test_no_match(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert router.match("GET", "/posts") is None
        assert router.match("POST", "/users") is None

    def test_get_allowed_methods(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        router.add_route("/users", dummy_handler, method="POST")
        router.add_route("/users", dummy_handler, method="DELETE")

        assert router.get_allowed_methods("/users") == ["DELETE", "GET", "POST"]


class TestDispatch:
    """dispatch() returns None for unknown paths so the app can fall through."""

    def test_dispatch_success(self):
        router = Router()

        @router.get("/hello")
        def hello(request):
            return ResponseBuilder().text("Hello!").build()

        response = router.dispatch(make_request("GET", "/hello"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello!"

    def test_dispatch_unknown_path_returns_none(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        assert router.dispatch(make_request("GET", "/posts")) is None

    def test_dispatch_method_not_allowed(self):
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        response = router.dispatch(make_request("POST", "/users"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET"

    def test_path_params_in_request(self):
        router = Router()
        captured_params = {}

        @router.get("/users/:id")
        def get_user(request):
            captured_params.update(request.path_params)
            return ResponseBuilder().json(request.path_params).build()

        router.dispatch(make_request("GET", "/users/42"))

        assert captured_params == {"id": "42"}


class TestRouterDecorators:
    """Tests for decorator-style route registration."""

    @pytest.mark.parametrize("decorator, method", [
        ("get", "GET"),
        ("post", "POST"),
        ("put", "PUT"),
        ("patch", "PATCH"),
        ("delete", "DELETE"),
    ])
    def test_method_decorators(self, decorator, method):
        router = Router()

        @getattr(router, decorator)("/test")
        def handler(request):
            return ResponseBuilder().text("test").build()

        match = router.match(method, "/test")
        assert match is not None
        assert match.route.handler is handler
