"""
=============================================================================
APPLICATION
=============================================================================

The object middleware gets mounted on. A fresh Application is created on
every start, so nothing from a previous server instance (stale routes,
closures over old module globals) survives a restart.

    app = Application()
    app.use(CompressionMiddleware())
    app.use(custom_handler)

    @app.get("/api/ping")
    def ping(request):
        return ok({"pong": True})

    response = app.handle(request)

Request flow:

    app.use() middleware (in order) → routes → 404

=============================================================================
"""

import logging
from typing import Optional, Union

from .http.request import HTTPRequest
from .http.response import HTTPResponse, not_found
from .http.router import Router
from .middleware.base import MiddlewareFunc, Middleware, MiddlewarePipeline, NextHandler


logger = logging.getLogger(__name__)


class Application:
    """Middleware chain plus a route table."""

    def __init__(self, name: str = "liveserver"):
        self.name = name
        self.router = Router()
        self._pipeline = MiddlewarePipeline()
        self._handler: Optional[NextHandler] = None

    # =========================================================================
    # MOUNTING
    # =========================================================================

    def use(self, middleware: Union[Middleware, MiddlewareFunc]) -> "Application":
        """Mount ``middleware`` after everything mounted so far."""
        if self._handler is not None:
            raise RuntimeError("Cannot mount middleware after the application started handling requests")
        self._pipeline.add(middleware)
        return self

    def route(self, path: str, method: Optional[str] = None):
        return self.router.route(path, method)

    def get(self, path: str):
        return self.router.get(path)

    def post(self, path: str):
        return self.router.post(path)

    def put(self, path: str):
        return self.router.put(path)

    def patch(self, path: str):
        return self.router.patch(path)

    def delete(self, path: str):
        return self.router.delete(path)

    @property
    def middleware(self) -> MiddlewarePipeline:
        return self._pipeline

    # =========================================================================
    # HANDLING
    # =========================================================================

    def _fallback(self, request: HTTPRequest) -> HTTPResponse:
        """Innermost handler: routes, then 404."""
        response = self.router.dispatch(request)
        if response is None:
            return not_found(f"Cannot {request.method} {request.path}")
        return response

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Run ``request`` through the whole chain.

        The chain is wrapped on first use and frozen afterwards.
        """
        if self._handler is None:
            self._handler = self._pipeline.wrap(self._fallback)
            logger.debug(f"Pipeline ready: {' → '.join(self._pipeline.names) or '(empty)'}")
        return self._handler(request)
