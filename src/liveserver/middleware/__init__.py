"""
=============================================================================
MIDDLEWARE FRAMEWORK
=============================================================================

    base.py          Middleware ABC, FunctionMiddleware, MiddlewarePipeline
    compression.py   gzip for text responses (always mounted first)
    logging.py       Access log (optional)

User middleware, whether from the custom server module or from addons, is
any ``(request, next) -> response`` callable.

=============================================================================
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    FunctionMiddleware,
    NextHandler,
    as_middleware,
    function_middleware,
)
from .compression import CompressionMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "NextHandler",
    "as_middleware",
    "function_middleware",
    "CompressionMiddleware",
    "LoggingMiddleware",
]
