"""
Access-log middleware.

Mounted ahead of everything else when ``StartOptions.access_log`` is set,
so the logged duration covers the whole pipeline. Entries go to the
``liveserver.access`` logger in Apache-like text or JSON.
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("liveserver.access")


@dataclass
class RequestLog:
    request_id: str
    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float

    def to_text(self) -> str:
        return (
            f'{self.client_ip} "{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms [{self.request_id}]'
        )

    def to_json(self) -> str:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return json.dumps(entry)


class LoggingMiddleware(Middleware):
    """Logs one line per request and tags the response with X-Request-ID."""

    def __init__(self, log_format: str = "text"):
        self.log_format = log_format

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        request.context["request_id"] = request_id
        start_time = time.monotonic()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
        logger.info(entry.to_json() if self.log_format == "json" else entry.to_text())

        response.headers["X-Request-ID"] = request_id
        return response
