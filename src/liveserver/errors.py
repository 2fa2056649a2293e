"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure the lifecycle manager reports to the developer is one of
these types. They split into two families:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ServerError (silent)                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ConfigurationError   Bad TLS paths, malformed custom server       │
    │                        module. Raised before any socket is opened.  │
    │                                                                      │
    │   BindError            Port in use / permission denied.             │
    │                                                                      │
    │   MiddlewareBuildError An addon hook or the custom server module    │
    │                        failed while the pipeline was assembled.     │
    │                                                                      │
    │   RestartError         Anything that failed inside a restart        │
    │                        cycle. Reported, never raised to callers.    │
    │                                                                      │
    │   InvalidStateError    start()/stop() called from the wrong state.  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

"Silent" means the UI prints the message only, without a traceback. The
message already tells the developer what to fix; a stack trace into the
server internals would only be noise.

=============================================================================
"""

from typing import Optional


class ServerError(Exception):
    """
    Base class for user-facing lifecycle errors.

    Carries a ``silent`` flag read by the UI: silent errors are shown as
    their message alone.
    """

    silent = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ServerError):
    """Invalid or missing static configuration."""


class BindError(ServerError):
    """The transport could not acquire the requested address."""

    def __init__(self, message: str, host: Optional[str] = None, port: Optional[int] = None):
        super().__init__(message)
        self.host = host
        self.port = port


class MiddlewareBuildError(ServerError):
    """An addon or custom server hook failed during pipeline assembly."""


class RestartError(ServerError):
    """
    A restart cycle failed.

    The original exception is kept as ``__cause__``. When that cause is
    itself a silent ServerError the message is enough; otherwise the UI
    shows the cause's traceback, since it usually points into the
    developer's own server code.
    """

    @property
    def silent(self) -> bool:  # type: ignore[override]
        cause = self.__cause__
        return cause is None or getattr(cause, "silent", False)


class InvalidStateError(ServerError):
    """A lifecycle operation was requested from a state that forbids it."""
