"""
Cooperative cancellation for a download session.
"""

import asyncio
import logging

log = logging.getLogger(__name__)


class CancelToken:
    """
    A one-shot cancellation signal shared by the orchestrator and its workers.

    Tasks registered with the token are cancelled the moment `cancel()` is
    called, so their network requests stop early; the formal `Aborted` outcome
    is raised by whoever checks `cancelled` at the next batch boundary.
    """

    def __init__(self):
        self._cancelled = False
        self._tasks: set[asyncio.Task] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Signals cancellation. Calling it more than once has no further effect."""
        if self._cancelled:
            return
        self._cancelled = True
        in_flight = [task for task in self._tasks if not task.done()]
        log.debug(f"Cancellation requested; aborting {len(in_flight)} in-flight tasks.")
        for task in in_flight:
            task.cancel()

    def register(self, task: asyncio.Task) -> asyncio.Task:
        """Ties `task` to this token until it finishes."""
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        if self._cancelled:
            task.cancel()
        return task
