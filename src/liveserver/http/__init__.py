"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

    request.py       Parse framed request bytes into HTTPRequest
    response.py      HTTPResponse, ResponseBuilder, convenience constructors
    router.py        Pattern routes for mock/proxy modules
    status_codes.py  HTTPStatus enum

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    not_found,
    method_not_allowed,
    internal_error,
    error_response,
)
from .router import Router, Route
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "not_found",
    "method_not_allowed",
    "internal_error",
    "error_response",
    "Router",
    "Route",
    "HTTPStatus",
]
