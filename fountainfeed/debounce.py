"""
Debouncer: a cancelable delay in front of a coroutine.

Each schedule() cancels whatever is still pending and starts a new timer,
so only the most recent request runs. Pure asyncio, no I/O.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

_LOGGER = logging.getLogger(__name__)


class Debouncer:
    """Runs the latest scheduled coroutine factory after its delay elapses."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(
        self,
        coro_factory: Callable[[], Awaitable[None]],
        delay: float | None = None,
    ) -> asyncio.Task:
        """
        Cancel the pending call (if any) and schedule coro_factory().

        delay overrides the default; 0 still goes through the event loop
        but without a timer.
        """
        self.cancel()
        wait = self.delay if delay is None else delay
        self._task = asyncio.ensure_future(self._run(coro_factory, wait))
        return self._task

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()

    async def wait(self) -> None:
        """Wait until no call is pending, including ones scheduled while waiting."""
        while self.pending:
            task = self._task
            await asyncio.gather(task, return_exceptions=True)

    @staticmethod
    async def _run(coro_factory: Callable[[], Awaitable[None]], wait: float) -> None:
        if wait > 0:
            await asyncio.sleep(wait)
        try:
            await coro_factory()
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Debounced call failed")
