"""
=============================================================================
LIVESERVER - Development HTTP Server With Hot Restart
=============================================================================

Serves a project during development and restarts itself whenever the
project's custom server code (mock endpoints, API proxies) changes, so
the developer never has to relaunch anything by hand.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     LIVESERVER ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. LIFECYCLE                                                      │
    │      - start / stop / restart state machine                        │
    │      - never more than one bound server                            │
    │      - "listening" and "restart" events                            │
    │                                                                      │
    │   2. HOT RESTART                                                    │
    │      - watcher notifications debounced into one restart            │
    │      - restarts serialized, none lost                              │
    │      - custom server modules purged from sys.modules               │
    │                                                                      │
    │   3. FAST STOP                                                      │
    │      - every open connection tracked                               │
    │      - connections destroyed, not drained                          │
    │                                                                      │
    │   4. MIDDLEWARE PIPELINE                                            │
    │      - gzip compression first                                      │
    │      - custom server module next                                   │
    │      - addon middleware last, mounted serially                     │
    │                                                                      │
    │   5. HTTP/1.1 OVER ASYNCIO                                          │
    │      - keep-alive connections, optional TLS                        │
    │      - sync handlers on a worker thread pool                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    liveserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m liveserver)
    ├── server.py            # ServerLifecycleManager
    ├── scheduler.py         # RestartScheduler (debounce + serialization)
    ├── pipeline.py          # MiddlewarePipelineBuilder
    ├── loader.py            # Custom server module loading / cache purge
    ├── tls.py               # TLS key/certificate loading
    ├── watcher.py           # Polling file watcher
    ├── app.py               # Application (middleware + routes)
    ├── config.py            # StartOptions dataclass
    ├── errors.py            # Error taxonomy
    ├── events.py            # EventEmitter
    ├── ui.py                # Console output sink
    ├── core/                # One listening server instance
    │   ├── http_server.py   # Bind, keep-alive loop, close
    │   ├── connection.py    # Connection wrapper
    │   └── registry.py      # Open connection tracking
    ├── http/                # HTTP protocol components
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Response building
    │   ├── router.py        # URL routing
    │   └── status_codes.py  # HTTP status enum
    └── middleware/          # Middleware components
        ├── base.py          # Middleware contract and pipeline
        ├── compression.py   # gzip compression
        └── logging.py       # Access log

=============================================================================
QUICK START
=============================================================================

    # server/__init__.py in your project
    from liveserver.http import ok

    def setup(app, options):
        @app.get("/api/users/:id")
        def get_user(request):
            return ok({"id": request.path_params["id"]})

    # then
    python -m liveserver --port 4200

Or from code:

    import asyncio
    from liveserver import ServerLifecycleManager, StartOptions

    async def main():
        manager = ServerLifecycleManager()
        await manager.start(StartOptions(port=4200))
        ...
        await manager.close()

    asyncio.run(main())

=============================================================================
"""

__version__ = "1.0.0"

from .app import Application
from .config import StartOptions
from .errors import (
    BindError,
    ConfigurationError,
    InvalidStateError,
    MiddlewareBuildError,
    RestartError,
    ServerError,
)
from .pipeline import MiddlewareContext
from .server import ServerLifecycleManager, ServerState

__all__ = [
    "Application",
    "StartOptions",
    "ServerLifecycleManager",
    "ServerState",
    "MiddlewareContext",
    "ServerError",
    "ConfigurationError",
    "BindError",
    "MiddlewareBuildError",
    "RestartError",
    "InvalidStateError",
    "__version__",
]
