"""
=============================================================================
CUSTOM SERVER MODULE LOADING
=============================================================================

A project may ship a custom server module (mock endpoints, proxies) at
``server_module_root``:

    server/__init__.py      a package (may import its own submodules)
    server.py               or a single module

=============================================================================
EXPORT CONVENTION
=============================================================================

The module exports exactly one of:

    def middleware(request, next):      → DirectHandler
        ...                               mounted as-is with app.use()

    def setup(app, options):            → FactoryFunction
        app.use(...)                      called once per start; may be
        @app.get("/api/users")            async; mounts whatever it wants
        ...

Exporting both, neither, or a non-callable is a ConfigurationError.

=============================================================================
CACHE INVALIDATION
=============================================================================

Python caches imported modules in ``sys.modules``. A restart that simply
re-imported the module would get the old code back. ``invalidate(root)``
drops every cached module whose file lives under the root:

    root = /project/server
    prefix = /project/server/          ← trailing separator

    /project/server/__init__.py        dropped
    /project/server/mocks/users.py     dropped
    /project/server-two/__init__.py    kept (shares the prefix text only)

A single process-wide ModuleCache is used. ``sys.modules`` is process-wide
too, and two caches would just disagree about it.

=============================================================================
"""

import hashlib
import importlib
import importlib.util
import logging
import os
import sys
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Callable, List, Optional, Tuple, Union

from .errors import ConfigurationError, MiddlewareBuildError


logger = logging.getLogger(__name__)

MODULE_NAME_PREFIX = "_liveserver_server_"


@dataclass(frozen=True)
class DirectHandler:
    """The module's ``middleware`` export, mounted directly."""

    handler: Callable[..., Any]
    source: str = ""


@dataclass(frozen=True)
class FactoryFunction:
    """The module's ``setup(app, options)`` export."""

    factory: Callable[..., Any]
    source: str = ""


ServerModule = Union[DirectHandler, FactoryFunction]


class ModuleCache:
    """Imports custom server modules and purges them from ``sys.modules``."""

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    @staticmethod
    def _resolve(root: str) -> Tuple[str, Optional[str], bool]:
        """
        Returns:
            (absolute root, file to import or None, is_package)
        """
        base = os.path.abspath(root)
        if base.endswith(".py"):
            return base, base if os.path.isfile(base) else None, False

        init_file = os.path.join(base, "__init__.py")
        if os.path.isfile(init_file):
            return base, init_file, True

        module_file = base + ".py"
        if os.path.isfile(module_file):
            return base, module_file, False

        return base, None, False

    @staticmethod
    def module_name(root: str) -> str:
        """Stable private ``sys.modules`` name for the module at ``root``."""
        digest = hashlib.sha1(os.path.abspath(root).encode("utf-8")).hexdigest()[:10]
        return f"{MODULE_NAME_PREFIX}{digest}"

    # =========================================================================
    # LOADING
    # =========================================================================

    def load(self, root: str) -> Optional[ModuleType]:
        """
        Import the custom server module at ``root``.

        Returns the cached module when it is still in ``sys.modules``, and
        None when nothing exists at ``root``.

        Raises:
            MiddlewareBuildError: Importing the module raised.
        """
        base, path, is_package = self._resolve(root)
        if path is None:
            logger.debug(f"No custom server module at {base}")
            return None

        name = self.module_name(root)
        cached = sys.modules.get(name)
        if cached is not None:
            return cached

        spec = importlib.util.spec_from_file_location(
            name,
            path,
            submodule_search_locations=[base] if is_package else None,
        )
        if spec is None or spec.loader is None:
            raise ConfigurationError(f'Custom server module "{path}" cannot be imported')

        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(name, None)
            raise MiddlewareBuildError(f'Could not load custom server module "{path}": {e}') from e

        logger.info(f"Loaded custom server module {path}")
        return module

    # =========================================================================
    # INVALIDATION
    # =========================================================================

    def invalidate(self, root: str) -> List[str]:
        """
        Drop every cached module loaded from under ``root``.

        Returns:
            Names of the removed ``sys.modules`` entries.
        """
        base, module_file, is_package = self._resolve(root)
        prefix = os.path.join(base, "")
        single_file = module_file if module_file and not is_package else None

        removed = []
        for name, module in list(sys.modules.items()):
            file = getattr(module, "__file__", None)
            if not file:
                continue
            file = os.path.abspath(file)
            if file.startswith(prefix) or file == single_file:
                del sys.modules[name]
                removed.append(name)

        # Path finders cache directory listings; new submodules must be seen
        importlib.invalidate_caches()

        if removed:
            logger.debug(f"Invalidated {len(removed)} cached modules under {prefix}")
        return removed


module_cache = ModuleCache()


def load_server_module(root: Optional[str], cache: Optional[ModuleCache] = None) -> Optional[ServerModule]:
    """
    Load the custom server module at ``root`` and classify its export.

    Returns:
        DirectHandler, FactoryFunction, or None when there is no module.

    Raises:
        ConfigurationError: The module's exports break the convention.
        MiddlewareBuildError: Importing the module raised.
    """
    if not root:
        return None

    module = (cache or module_cache).load(root)
    if module is None:
        return None

    source = getattr(module, "__file__", root)
    middleware = getattr(module, "middleware", None)
    setup = getattr(module, "setup", None)

    if middleware is not None and setup is not None:
        raise ConfigurationError(
            f'Custom server module "{source}" exports both `middleware` and `setup`; export only one'
        )

    if middleware is not None:
        if not callable(middleware):
            raise ConfigurationError(f'Custom server module "{source}": `middleware` must be callable')
        return DirectHandler(middleware, source)

    if setup is not None:
        if not callable(setup):
            raise ConfigurationError(f'Custom server module "{source}": `setup` must be callable')
        return FactoryFunction(setup, source)

    raise ConfigurationError(
        f'Custom server module "{source}" must export either '
        f"`middleware(request, next)` or `setup(app, options)`"
    )
