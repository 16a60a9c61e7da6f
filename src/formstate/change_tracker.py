"""
Debounced change tracking.

Turns a flood of per-keystroke edits into a bounded rate of "this path
needs server attention" events. Each path has its own debounce timer,
restarted on every edit; there is no maximum wait, so a field edited
continuously never fires.

After a path's debounce fires it stays "changed" for a further freshness
window (``delay``). The backend consults this before applying a server
update so a fresher local edit is never overwritten by a response to an
older request.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, Set

from formstate.converter import maybe_await
from formstate.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ChangeTracker:
    """Per-path debounce with a freshness window.

    Args:
        callback: Called (and awaited if async) with the path once its debounce fires
        debounce: Seconds without a new edit before ``callback`` runs
        delay: Seconds after firing during which ``has_changed`` stays true
    """

    def __init__(self, callback: Callable[[str], Any], debounce: float = 0.5, delay: float = 1.0):
        self._callback = callback
        self.debounce = debounce
        self.delay = delay
        self._timers: Dict[str, asyncio.Task] = {}
        self._fired_at: Dict[str, float] = {}
        # Strong references to running callbacks so they are not garbage collected
        self._in_flight: Set[asyncio.Task] = set()

    def change(self, path: str) -> None:
        """Record an edit of ``path`` and (re)start its debounce timer."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            raise ConfigurationError("ChangeTracker.change() requires a running event loop")
        existing = self._timers.pop(path, None)
        if existing is not None:
            existing.cancel()
        self._timers[path] = loop.create_task(self._debounced(path))

    async def _debounced(self, path: str) -> None:
        await asyncio.sleep(self.debounce)
        if self._timers.get(path) is asyncio.current_task():
            del self._timers[path]
        self._fired_at[path] = time.monotonic()
        logger.debug(f"Debounce fired for {path}")
        # run the callback outside the timer task: a new edit cancels the
        # timer, never an in-flight remote call
        task = asyncio.ensure_future(self._run_callback(path))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run_callback(self, path: str) -> None:
        try:
            await maybe_await(self._callback(path))
        except Exception as e:
            logger.error(f"Error in change callback for {path}: {e}", exc_info=True)

    def has_changed(self, path: str) -> bool:
        """True while an edit of ``path`` is pending or still inside its freshness window."""
        if path in self._timers:
            return True
        fired_at = self._fired_at.get(path)
        if fired_at is None:
            return False
        if time.monotonic() - fired_at < self.delay:
            return True
        del self._fired_at[path]
        return False

    def is_finished(self) -> bool:
        """True if no debounce timer is pending."""
        return not self._timers

    async def wait_until_finished(self) -> None:
        """Wait until every pending debounce timer has fired (or been superseded)."""
        while self._timers:
            await asyncio.wait(list(self._timers.values()))

    def dispose(self) -> None:
        """Cancel all pending timers."""
        for task in self._timers.values():
            task.cancel()
        self._timers.clear()
