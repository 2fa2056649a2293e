"""
=============================================================================
URL ROUTER
=============================================================================

A small router so that custom server modules can mount mocks:

    def setup(app, options):
        @app.get("/api/users/:id")
        def get_user(request):
            return ok({"id": request.path_params["id"]})

Patterns:
    :param      one path segment        /users/:id      → {"id": "42"}
    *param      the rest of the path    /files/*path    → {"path": "a/b.txt"}

Unlike a standalone router, ``dispatch()`` returns None when nothing
matches, so the application can fall through to the next middleware.

=============================================================================
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed


logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """One registered route. ``method=None`` accepts any method."""

    path: str
    handler: Handler
    method: Optional[str] = None
    _pattern: re.Pattern = field(default=None, repr=False)


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """Ordered route table: first registered, first matched."""

    def __init__(self):
        self._routes: List[Route] = []

    def add_route(self, path: str, handler: Handler, method: Optional[str] = None) -> Route:
        route = Route(
            path=path,
            handler=handler,
            method=method.upper() if method else None,
            _pattern=self._compile_pattern(path),
        )
        self._routes.append(route)
        logger.debug(f"Registered route {route.method or '*'} {path}")
        return route

    @staticmethod
    def _compile_pattern(path: str) -> re.Pattern:
        """
        "/users/:id/files/*rest" → ^/users/(?P<id>[^/]+)/files/(?P<rest>.*)$
        """
        regex_parts = ["^"]
        for segment in path.split("/"):
            if not segment:
                continue
            regex_parts.append("/")
            if segment.startswith(":"):
                regex_parts.append(f"(?P<{segment[1:]}>[^/]+)")
            elif segment.startswith("*"):
                regex_parts.append(f"(?P<{segment[1:] or 'wildcard'}>.*)")
                break
            else:
                regex_parts.append(re.escape(segment))
        if len(regex_parts) == 1:
            regex_parts.append("/")
        regex_parts.append("$")
        return re.compile("".join(regex_parts))

    @staticmethod
    def _normalize(path: str) -> str:
        return "/" + path.strip("/") if path != "/" else "/"

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        path = self._normalize(path)
        for route in self._routes:
            if route.method and route.method != method.upper():
                continue
            found = route._pattern.match(path)
            if found:
                return RouteMatch(route=route, params=found.groupdict())
        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        path = self._normalize(path)
        return sorted({
            route.method
            for route in self._routes
            if route.method and route._pattern.match(path)
        })

    def dispatch(self, request: HTTPRequest) -> Optional[HTTPResponse]:
        """
        Route ``request``.

        Returns the handler's response, a 405 when the path exists under
        another method, or None when no route knows the path.
        """
        found = self.match(request.method, request.path)
        if found:
            request.path_params = found.params
            return found.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)
        return None

    def __len__(self) -> int:
        return len(self._routes)

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(self, path: str, method: Optional[str] = None) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method)
            return handler
        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "GET")

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "POST")

    def put(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT")

    def patch(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "PATCH")

    def delete(self, path: str) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE")
