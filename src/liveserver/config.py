"""
=============================================================================
START OPTIONS
=============================================================================

Everything a lifecycle cycle needs, captured once per start() call.

=============================================================================
WHY FROZEN?
=============================================================================

A restart re-runs start() with the options captured by the first start().
If any part of the system could mutate them mid-cycle, a restart would
quietly come back with different settings than the server it replaced.
A frozen dataclass makes that impossible; overrides are explicit:

    options = StartOptions(port=4200)
    tls_options = dataclasses.replace(options, use_tls=True, ...)

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m liveserver --port 3000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── LIVESERVER_PORT=3000 python -m liveserver                 │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .errors import ConfigurationError


DEFAULT_PORT = 4200
DEFAULT_RESTART_DELAY = 0.1
ACCESS_LOG_FORMATS = ("text", "json")


def clean_base_url(url: Optional[str]) -> str:
    """
    Normalize a base URL to exactly one leading and one trailing slash.

        clean_base_url("")          → "/"
        clean_base_url("app")       → "/app/"
        clean_base_url("//app/x//") → "/app/x/"
        clean_base_url(None)        → "/"
    """
    path = (url or "").strip("/")
    if not path:
        return "/"
    return f"/{path}/"


def display_host(host: Optional[str]) -> str:
    """The host shown in status lines. Binding to None means all interfaces."""
    return host or "localhost"


@dataclass(frozen=True)
class StartOptions:
    """
    Configuration for one server lifecycle.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port

    TLS
    - use_tls, tls_key_path, tls_cert_path

    URLS
    - root_url, base_url (only used for the status line)

    PIPELINE SOURCES
    - server_module_root, addons, compression, access_log, access_log_format

    COLLABORATORS
    - watcher (emits change/add/delete), ui (status line sink)

    RESTART
    - restart_delay (debounce window, seconds)

    HTTP / WORKERS
    - max_workers, keep_alive, keep_alive_timeout, read_timeout,
      max_request_size, server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: Optional[str] = None
    """Bind address. None binds every interface and displays "localhost"."""

    port: int = DEFAULT_PORT
    """Port to bind. 0 lets the OS pick one (handy in tests)."""

    # ─────────────────────────────────────────────────────────────────────
    # TLS
    # ─────────────────────────────────────────────────────────────────────

    use_tls: bool = False
    tls_key_path: Optional[str] = None
    tls_cert_path: Optional[str] = None

    # ─────────────────────────────────────────────────────────────────────
    # URLS
    # ─────────────────────────────────────────────────────────────────────

    root_url: Optional[str] = None
    base_url: Optional[str] = None

    # ─────────────────────────────────────────────────────────────────────
    # PIPELINE SOURCES
    # ─────────────────────────────────────────────────────────────────────

    server_module_root: Optional[str] = "server"
    """
    Path to the custom server module: a package directory with an
    __init__.py, or a .py file. Missing paths simply mean "no module".
    """

    addons: Sequence[Any] = ()
    """Objects that may expose a ``server_middleware(context)`` hook."""

    compression: bool = True
    access_log: bool = False
    access_log_format: str = "text"
    """"text" (Apache-like) or "json"."""

    # ─────────────────────────────────────────────────────────────────────
    # COLLABORATORS
    # ─────────────────────────────────────────────────────────────────────

    watcher: Optional[Any] = None
    """Anything with on()/off() that emits change, add and delete."""

    ui: Optional[Any] = None
    """Anything with write_line()/write_error(). Defaults to ConsoleUI."""

    # ─────────────────────────────────────────────────────────────────────
    # RESTART
    # ─────────────────────────────────────────────────────────────────────

    restart_delay: float = DEFAULT_RESTART_DELAY

    # ─────────────────────────────────────────────────────────────────────
    # HTTP / WORKERS
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 8
    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    read_timeout: float = 30.0
    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    server_name: str = "liveserver"

    log_level: str = "INFO"

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    @property
    def base_path(self) -> str:
        """
        Base path shown in the status line.

        An explicitly empty root_url means "/"; otherwise root_url wins over
        base_url.
        """
        if self.root_url == "":
            return "/"
        return clean_base_url(self.root_url or self.base_url)

    @property
    def scheme(self) -> str:
        return "https" if self.use_tls else "http"

    @property
    def display_host(self) -> str:
        return display_host(self.host)

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def from_env(cls, **overrides: Any) -> "StartOptions":
        """
        Create options from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        LIVESERVER_HOST               Bind host (default: all interfaces)
        LIVESERVER_PORT               Port (default: 4200)
        LIVESERVER_SSL                "1"/"true" to serve HTTPS
        LIVESERVER_SSL_KEY            Path to the TLS key
        LIVESERVER_SSL_CERT           Path to the TLS certificate
        LIVESERVER_ROOT_URL           Base URL for the status line
        LIVESERVER_SERVER_ROOT        Custom server module path
        LIVESERVER_RESTART_DELAY      Debounce window in seconds
        LIVESERVER_ACCESS_LOG         "1"/"true" to log every request
        LIVESERVER_ACCESS_LOG_FORMAT  "text" or "json"
        LIVESERVER_LOG_LEVEL          Logging level

        =====================================================================

        Keyword arguments override the environment (CLI flags use this).
        """
        values = dict(
            host=os.getenv("LIVESERVER_HOST") or None,
            port=int(os.getenv("LIVESERVER_PORT", str(DEFAULT_PORT))),
            use_tls=os.getenv("LIVESERVER_SSL", "").lower() in ("1", "true", "yes"),
            tls_key_path=os.getenv("LIVESERVER_SSL_KEY", "ssl/server.key"),
            tls_cert_path=os.getenv("LIVESERVER_SSL_CERT", "ssl/server.crt"),
            root_url=os.getenv("LIVESERVER_ROOT_URL"),
            server_module_root=os.getenv("LIVESERVER_SERVER_ROOT", "server"),
            restart_delay=float(os.getenv("LIVESERVER_RESTART_DELAY", str(DEFAULT_RESTART_DELAY))),
            access_log=os.getenv("LIVESERVER_ACCESS_LOG", "").lower() in ("1", "true", "yes"),
            access_log_format=os.getenv("LIVESERVER_ACCESS_LOG_FORMAT", "text"),
            log_level=os.getenv("LIVESERVER_LOG_LEVEL", "INFO"),
        )
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def validate(self) -> None:
        """
        Fail fast on values that can never work.

        TLS file existence is checked later by the TLS loader, on every
        start, so a certificate created after launch is picked up.
        """
        if not 0 <= self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.use_tls and not (self.tls_key_path and self.tls_cert_path):
            raise ConfigurationError(
                "Serving over TLS requires both --ssl-key and --ssl-cert paths"
            )

        if self.restart_delay < 0:
            raise ConfigurationError("restart_delay must be >= 0")

        if self.access_log_format not in ACCESS_LOG_FORMATS:
            raise ConfigurationError(
                f"Invalid access log format: {self.access_log_format!r}. Must be one of {ACCESS_LOG_FORMATS}."
            )

        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be >= 1")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ConfigurationError("read_timeout must be > 0")


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger and the liveserver logger."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("liveserver").setLevel(numeric_level)
