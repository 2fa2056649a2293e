"""
=============================================================================
FILE WATCHER
=============================================================================

Emits ``add``, ``change`` and ``delete`` (with the file path) for files
under the watched paths, using a watchdog observer.

    watcher = FileWatcher(["server", "server.py"])
    watcher.on("change", lambda path: print(path))
    watcher.start()
    ...
    await watcher.stop()

    ┌──────────────────────┐  on_created / on_modified   ┌──────────────┐
    │ watchdog observer    │ ──────────────────────────► │ ChangeHandler│
    │ (own thread)         │  on_deleted / on_moved      │  (filters)   │
    └──────────────────────┘                             └──────┬───────┘
                                                                │
                                           call_soon_threadsafe │
                                                                ▼
                                                    FileWatcher.emit(...)
                                                    on the event loop

Directories are watched recursively. A watched file, or a path that does
not exist yet, is watched through its parent directory, so creating
``server.py`` later still triggers an ``add``.

``polling=True`` uses watchdog's PollingObserver, for network mounts and
containers where native notifications do not arrive.

=============================================================================
"""

import asyncio
import logging
import os
from typing import Callable, Iterable, List, Set, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .events import EventEmitter


logger = logging.getLogger(__name__)

IGNORED_DIRS = {"__pycache__", ".git", ".mypy_cache", ".pytest_cache"}
IGNORED_SUFFIXES = (".pyc", ".pyo", ".swp", ".tmp", "~")


def is_ignored(path: str) -> bool:
    if path.endswith(IGNORED_SUFFIXES):
        return True
    return any(part in IGNORED_DIRS for part in path.split(os.sep))


class ChangeHandler(FileSystemEventHandler):
    """
    Translates watchdog events into ``(event, path)`` notifications.

    Runs on the observer thread; ``notify`` is responsible for getting back
    to the event loop.
    """

    def __init__(self, roots: Iterable[str], notify: Callable[[str, str], None]):
        super().__init__()
        self.roots = [os.path.abspath(root) for root in roots]
        self.notify = notify

    def watches(self, path: str) -> bool:
        if is_ignored(path):
            return False
        for root in self.roots:
            if path == root or path.startswith(os.path.join(root, "")):
                return True
        return False

    def on_created(self, event: FileSystemEvent) -> None:
        self._report("add", event, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._report("delete", event, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtimes move whenever an entry is added or removed
        if not event.is_directory:
            self._report("change", event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors that save via rename show up here
        self._report("delete", event, event.src_path)
        self._report("add", event, event.dest_path)

    def _report(self, name: str, event: FileSystemEvent, raw_path) -> None:
        path = os.path.abspath(os.fsdecode(raw_path))
        if event.is_directory and path not in self.roots:
            return
        if self.watches(path):
            self.notify(name, path)


class FileWatcher(EventEmitter):
    """
    Watches files and directories and emits their changes on the event loop.

    Args:
        paths: Files or directories to watch. Missing paths are fine.
        polling: Use stat polling instead of native notifications.
        interval: Observer timeout in seconds (the polling period).
    """

    def __init__(self, paths: Iterable[str], polling: bool = False, interval: float = 0.5):
        super().__init__()
        self.paths = [os.path.abspath(path) for path in paths]
        self.polling = polling
        self.interval = interval
        self._observer = None

    @property
    def running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def watch_targets(self) -> List[Tuple[str, bool]]:
        """The (directory, recursive) pairs scheduled on the observer."""
        targets: Set[Tuple[str, bool]] = set()
        for path in self.paths:
            if os.path.isdir(path):
                targets.add((path, True))
                continue
            parent = os.path.dirname(path)
            if os.path.isdir(parent):
                targets.add((parent, False))
            else:
                logger.debug(f"Not watching {path}: {parent} does not exist")
        return sorted(targets)

    def start(self) -> None:
        """Start the observer thread. Must be called from the event loop."""
        if self._observer is not None:
            return

        loop = asyncio.get_running_loop()

        def notify(event: str, path: str) -> None:
            loop.call_soon_threadsafe(self._emit_change, event, path)

        handler = ChangeHandler(self.paths, notify)
        observer_class = PollingObserver if self.polling else Observer
        observer = observer_class(timeout=self.interval)
        for directory, recursive in self.watch_targets():
            observer.schedule(handler, directory, recursive=recursive)
        observer.start()
        self._observer = observer

        kind = "polling" if self.polling else "native"
        logger.debug(f"Watching {self.paths} ({kind})")

    async def stop(self) -> None:
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        observer.stop()
        await asyncio.get_running_loop().run_in_executor(None, observer.join)

    def _emit_change(self, event: str, path: str) -> None:
        logger.debug(f"{event}: {path}")
        try:
            self.emit(event, path)
        except Exception as e:
            logger.exception(f"Watcher listener failed on {event} {path}: {e}")
