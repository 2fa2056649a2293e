"""
=============================================================================
MIDDLEWARE CONTRACT AND PIPELINE
=============================================================================

Every unit of request handling, built-in or user-supplied, has the same
shape:

    def middleware(request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        # pre-processing, or short-circuit by returning a response
        response = next(request)
        # post-processing
        return response

The pipeline wraps middleware like the layers of an onion. The first one
added is the outermost and sees the request first:

    pipeline.add(CompressionMiddleware())   # outermost
    pipeline.add(custom_server_handler)
    pipeline.add(addon_middleware)          # innermost
    handler = pipeline.wrap(app.fallback)

    Request:   Compression → custom → addon → fallback
    Response:  fallback → addon → custom → Compression

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Union

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]
MiddlewareFunc = Callable[[HTTPRequest, NextHandler], HTTPResponse]


class Middleware(ABC):
    """
    Base class for class-based middleware.

    Subclasses implement ``__call__(request, next)``. Calling ``next`` is
    what continues the chain; returning without calling it short-circuits.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """Adapts a plain ``(request, next)`` function to the Middleware API."""

    def __init__(self, func: MiddlewareFunc, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: MiddlewareFunc) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        def add_header(request, next):
            response = next(request)
            response.set_header("X-Mock", "1")
            return response
    """
    return FunctionMiddleware(func)


def as_middleware(middleware: Union[Middleware, MiddlewareFunc]) -> Middleware:
    """Return ``middleware`` as a Middleware instance."""
    if isinstance(middleware, Middleware):
        return middleware
    if not callable(middleware):
        raise TypeError(f"Middleware must be callable, got {type(middleware).__name__}")
    return FunctionMiddleware(middleware)


class MiddlewarePipeline:
    """
    Ordered middleware chain.

    The pipeline is only ever appended to while a server is being built;
    a restart builds a new one.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Union[Middleware, MiddlewareFunc]) -> "MiddlewarePipeline":
        """Append ``middleware`` (innermost so far). Returns self."""
        middleware = as_middleware(middleware)
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap ``handler`` with every middleware.

        Wrapping happens in reverse so the first-added middleware ends up
        outermost: [A, B, C] → A(B(C(handler))).
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    @staticmethod
    def _create_wrapped_handler(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    @property
    def names(self) -> List[str]:
        return [middleware.name for middleware in self._middleware]

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
