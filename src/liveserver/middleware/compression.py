"""
=============================================================================
GZIP COMPRESSION MIDDLEWARE
=============================================================================

The development server always mounts this first, so it wraps everything
else: mock responses from the custom server module and addon output are
compressed on the way out, exactly as they would be behind a real
front-end server.

    1. Check Accept-Encoding for gzip
    2. Call next(request)
    3. Compress if the body is large enough, text-like and not encoded
    4. Set Content-Encoding, Content-Length and Vary

=============================================================================
"""

import gzip
import logging
from typing import Optional, Set

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


class CompressionMiddleware(Middleware):
    """Compresses text responses with gzip when the client accepts it."""

    # Binary formats (images, video, archives) are already compressed
    COMPRESSIBLE_TYPES: Set[str] = {
        "text/html",
        "text/css",
        "text/plain",
        "text/xml",
        "text/javascript",
        "application/json",
        "application/javascript",
        "application/xml",
        "application/xhtml+xml",
        "image/svg+xml",
    }

    def __init__(
        self,
        min_size: int = 1024,
        level: int = 6,
        compressible_types: Optional[Set[str]] = None,
    ):
        """
        Args:
            min_size: Bodies smaller than this are sent as-is.
            level: gzip level, 1 (fastest) to 9 (smallest).
            compressible_types: Content types eligible for compression.
        """
        self.min_size = min_size
        self.level = level
        self.compressible_types = compressible_types or self.COMPRESSIBLE_TYPES

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        accepts_gzip = "gzip" in request.headers.get("accept-encoding", "").lower()

        response = next(request)

        if not accepts_gzip or not self._should_compress(response):
            return response

        original_size = len(response.body)
        compressed_body = gzip.compress(response.body, compresslevel=self.level)

        # gzip adds ~18 bytes of framing; skip when it doesn't pay off
        if len(compressed_body) >= original_size:
            return response

        response.body = compressed_body
        response.headers["Content-Encoding"] = "gzip"
        response.headers["Content-Length"] = str(len(compressed_body))

        vary = response.headers.get("Vary", "")
        if "Accept-Encoding" not in vary:
            response.headers["Vary"] = f"{vary}, Accept-Encoding".lstrip(", ")

        logger.debug(f"Compressed {request.path}: {original_size} → {len(compressed_body)} bytes")
        return response

    def _should_compress(self, response: HTTPResponse) -> bool:
        if "Content-Encoding" in response.headers:
            return False

        if len(response.body) < self.min_size:
            return False

        content_type = response.headers.get("Content-Type", "")
        base_type = content_type.split(";")[0].strip().lower()
        return base_type in self.compressible_types
