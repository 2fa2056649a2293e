"""
=============================================================================
RESTART SCHEDULING
=============================================================================

Turns a burst of file-change notifications into orderly restarts.

=============================================================================
STAGE 1: DEBOUNCE
=============================================================================

Saving a file often produces several notifications (editor writes a temp
file, renames it, touches the directory). Each one re-arms a timer:

    change ──┐ change ──┐ change ──┐
             ▼          ▼          ▼
    timer:  [──x        [──x       [────── delay ──────] → restart()

Only the last notification in the window leads to a restart.

=============================================================================
STAGE 2: SERIALIZATION
=============================================================================

A restart is stop → invalidate → start. Two of those interleaving would
bind two sockets or stop a half-started server. ``restart()`` waits for
the cycle in flight, then runs its own:

    restart() A:  [──── cycle A ────]
    restart() B:  wait ─────────────[──── cycle B ────]
    restart() C:  wait ───────────────────────────────[──── cycle C ────]

Every request gets its own full cycle (a change that lands while a cycle
is running is never lost). A running cycle is shielded; cancelling the
caller does not cancel it.

=============================================================================
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set


logger = logging.getLogger(__name__)


class RestartScheduler:
    """
    Debounces restart requests and runs restart cycles one at a time.

    Args:
        cycle: Coroutine function performing one restart cycle.
        delay: Debounce window in seconds.
    """

    def __init__(self, cycle: Callable[[], Awaitable[None]], delay: float = 0.1):
        self._cycle = cycle
        self.delay = delay
        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: Optional["asyncio.Future[None]"] = None
        self._tasks: Set["asyncio.Task[None]"] = set()

    @property
    def pending(self) -> bool:
        """A debounced restart is waiting for its timer."""
        return self._timer is not None

    @property
    def in_flight(self) -> bool:
        """A restart cycle is executing."""
        return self._in_flight is not None and not self._in_flight.done()

    # =========================================================================
    # DEBOUNCE
    # =========================================================================

    def schedule(self, *_args) -> None:
        """
        Request a restart after ``delay`` seconds of quiet.

        Accepts and ignores arguments so it can be used directly as a
        watcher listener.
        """
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop a pending debounced restart. A running cycle is unaffected."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.ensure_future(self.restart())
        self._tasks.add(task)
        task.add_done_callback(self._fired_done)

    def _fired_done(self, task: "asyncio.Task[None]") -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Debounced restart failed: {task.exception()!r}")

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    async def restart(self) -> None:
        """Run one restart cycle once no other cycle is in flight."""
        while self.in_flight:
            await asyncio.wait({self._in_flight})

        task = asyncio.ensure_future(self._cycle())
        self._in_flight = task
        task.add_done_callback(self._clear_in_flight)
        await asyncio.shield(task)

    def _clear_in_flight(self, task: "asyncio.Future[None]") -> None:
        if self._in_flight is task:
            self._in_flight = None

    async def wait_idle(self) -> None:
        """Wait for timer-started restarts and the cycle in flight to finish."""
        while self._tasks or self.in_flight:
            pending = set(self._tasks)
            if self._in_flight is not None:
                pending.add(self._in_flight)
            await asyncio.wait(pending)
