"""
=============================================================================
LIVESERVER CLI ENTRY POINT
=============================================================================

    # Serve on localhost:4200, restarting when ./server changes
    python -m liveserver

    # Custom port and base URL
    python -m liveserver --port 3000 --root-url /app/

    # HTTPS with a local certificate
    python -m liveserver --ssl --ssl-key ssl/server.key --ssl-cert ssl/server.crt

    # Addon middleware (module:attribute, repeatable)
    python -m liveserver --addon myproject.mocks:addon

=============================================================================
12-FACTOR APP: ENTRY POINT
=============================================================================

1. argparse reads CLI arguments; StartOptions.from_env() fills the rest
2. A FileWatcher and a ServerLifecycleManager are constructed
3. The manager runs until SIGINT/SIGTERM, then closes cleanly

A failing initial start exits with status 1. Failing restarts are
reported and the server keeps watching.

=============================================================================
"""

import argparse
import asyncio
import dataclasses
import importlib
import inspect
import logging
import signal
import sys
from typing import Any, List, Optional

from . import __version__
from .config import DEFAULT_PORT, StartOptions, configure_logging
from .errors import ConfigurationError, ServerError
from .server import ServerLifecycleManager
from .ui import ConsoleUI
from .watcher import FileWatcher


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="liveserver",
        description="Development HTTP server that restarts when its server code changes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m liveserver                          # Serve on localhost:4200
  python -m liveserver --port 3000              # Custom port
  python -m liveserver --server-root mocks      # Custom server module path
  python -m liveserver --addon pkg.mod:addon    # Mount addon middleware
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None, help="Host to bind to (default: all interfaces)")
    parser.add_argument("--port", "-p", type=int, default=None, help=f"Port to listen on (default: {DEFAULT_PORT})")

    # ─────────────────────────────────────────────────────────────────────
    # TLS ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--ssl", action="store_true", default=None, help="Serve over HTTPS")
    parser.add_argument("--ssl-key", default=None, help="Path to the TLS key (default: ssl/server.key)")
    parser.add_argument("--ssl-cert", default=None, help="Path to the TLS certificate (default: ssl/server.crt)")

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--root-url", default=None, help="Base URL shown in the status line")
    parser.add_argument("--server-root", default=None, help="Custom server module path (default: server)")
    parser.add_argument(
        "--addon",
        action="append",
        default=[],
        metavar="MODULE:ATTR",
        help="Object exposing server_middleware(context); repeatable, mounted in order",
    )
    parser.add_argument("--no-compression", action="store_true", help="Do not gzip responses")
    parser.add_argument("--access-log", action="store_true", help="Log every request")
    parser.add_argument(
        "--access-log-format",
        choices=["text", "json"],
        default=None,
        help="Access log line format (default: text)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # RESTART ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--restart-delay", type=float, default=None, help="Debounce window in seconds (default: 0.1)")
    parser.add_argument("--no-watch", action="store_true", help="Do not restart on file changes")
    parser.add_argument("--poll", action="store_true", help="Poll for file changes instead of using native notifications")

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--version", "-v", action="version", version=f"liveserver {__version__}")

    return parser


def load_addon(spec: str) -> Any:
    """
    Import an addon given as ``module:attribute``.

    Classes are instantiated with no arguments.
    """
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise ConfigurationError(f'Invalid addon "{spec}": expected module:attribute')

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f'Could not import addon module "{module_name}": {e}') from e

    try:
        addon = getattr(module, attr)
    except AttributeError:
        raise ConfigurationError(f'Addon module "{module_name}" has no attribute "{attr}"')

    return addon() if inspect.isclass(addon) else addon


def watch_paths(server_root: Optional[str]) -> List[str]:
    if not server_root:
        return []
    if server_root.endswith(".py"):
        return [server_root]
    return [server_root, server_root + ".py"]


def build_options(args: argparse.Namespace, ui: ConsoleUI) -> StartOptions:
    """Merge CLI arguments over the environment."""
    options = StartOptions.from_env(
        host=args.host,
        port=args.port,
        use_tls=args.ssl,
        tls_key_path=args.ssl_key,
        tls_cert_path=args.ssl_cert,
        root_url=args.root_url,
        server_module_root=args.server_root,
        restart_delay=args.restart_delay,
        compression=False if args.no_compression else None,
        access_log=True if args.access_log else None,
        access_log_format=args.access_log_format,
        log_level=args.log_level,
        addons=tuple(load_addon(spec) for spec in args.addon) or None,
        ui=ui,
    )

    if not args.no_watch:
        paths = watch_paths(options.server_module_root)
        if paths:
            options = dataclasses.replace(options, watcher=FileWatcher(paths, polling=args.poll))
    return options


async def serve(options: StartOptions) -> int:
    """Run the server until a termination signal arrives."""
    manager = ServerLifecycleManager(ui=options.ui)

    try:
        await manager.start(options)
    except ServerError as e:
        manager.ui.write_error(e)
        return 1

    watcher = options.watcher
    if isinstance(watcher, FileWatcher):
        watcher.start()

    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_requested.set)
        except NotImplementedError:
            pass  # Windows: Ctrl+C still ends asyncio.run()

    try:
        await stop_requested.wait()
    finally:
        logger.info("Shutting down")
        if isinstance(watcher, FileWatcher):
            await watcher.stop()
        await manager.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    ui = ConsoleUI()

    try:
        options = build_options(args, ui)
    except ServerError as e:
        ui.write_error(e)
        return 1
    except ValueError as e:
        ui.write_error(ConfigurationError(f"Invalid environment configuration: {e}"))
        return 1

    configure_logging(options.log_level)

    try:
        return asyncio.run(serve(options))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
