"""
=============================================================================
MIDDLEWARE PIPELINE ASSEMBLY
=============================================================================

Mounts middleware onto a fresh Application, in a fixed order:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  request                                                             │
    │     │                                                                │
    │     ▼                                                                │
    │  LoggingMiddleware        (options.access_log)                       │
    │     ▼                                                                │
    │  CompressionMiddleware    (options.compression, on by default)       │
    │     ▼                                                                │
    │  custom server module     (server_module_root)                       │
    │     ▼                                                                │
    │  addon middleware         (options.addons, in order)                 │
    │     ▼                                                                │
    │  routes → 404                                                        │
    └─────────────────────────────────────────────────────────────────────┘

The project's own proxy/mock code sees requests before any generic addon
instrumentation.

Addon hooks run one after another. A hook may return an awaitable; it is
awaited before the next addon runs, so later addons can rely on what
earlier ones mounted. The first failing hook aborts assembly.

=============================================================================
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Optional

from .app import Application
from .config import StartOptions
from .errors import MiddlewareBuildError, ServerError
from .loader import DirectHandler, FactoryFunction, ModuleCache, load_server_module
from .middleware.compression import CompressionMiddleware
from .middleware.logging import LoggingMiddleware


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MiddlewareContext:
    """What an addon's ``server_middleware`` hook receives."""

    app: Application
    options: StartOptions


def addon_name(addon: Any) -> str:
    return getattr(addon, "name", None) or type(addon).__name__


class MiddlewarePipelineBuilder:
    """Builds the request pipeline for one server instance."""

    def __init__(self, cache: Optional[ModuleCache] = None):
        self.cache = cache

    async def build(self, app: Application, options: StartOptions) -> Application:
        """
        Mount every middleware layer on ``app``.

        Raises:
            ConfigurationError: The custom server module is malformed.
            MiddlewareBuildError: The custom module or an addon hook failed.
        """
        if options.access_log:
            app.use(LoggingMiddleware(options.access_log_format))

        if options.compression:
            app.use(CompressionMiddleware())

        await self._mount_server_module(app, options)
        await self._mount_addons(app, options)

        logger.debug(f"Middleware pipeline: {app.middleware.names}")
        return app

    # ─────────────────────────────────────────────────────────────────────
    # CUSTOM SERVER MODULE
    # ─────────────────────────────────────────────────────────────────────

    async def _mount_server_module(self, app: Application, options: StartOptions) -> None:
        server_module = load_server_module(options.server_module_root, self.cache)

        if isinstance(server_module, DirectHandler):
            app.use(server_module.handler)

        elif isinstance(server_module, FactoryFunction):
            try:
                result = server_module.factory(app, options)
                if inspect.isawaitable(result):
                    await result
            except ServerError:
                raise
            except Exception as e:
                raise MiddlewareBuildError(
                    f'Custom server module "{server_module.source}" setup failed: {e}'
                ) from e

    # ─────────────────────────────────────────────────────────────────────
    # ADDONS
    # ─────────────────────────────────────────────────────────────────────

    async def _mount_addons(self, app: Application, options: StartOptions) -> None:
        context = MiddlewareContext(app=app, options=options)

        for addon in options.addons:
            hook = getattr(addon, "server_middleware", None)
            if not callable(hook):
                continue

            name = addon_name(addon)
            try:
                result = hook(context)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                raise MiddlewareBuildError(f'Addon "{name}" failed to install server middleware: {e}') from e

            logger.debug(f"Addon {name} installed server middleware")
