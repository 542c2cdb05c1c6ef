"""Reset-on-change timer that gates background lint dispatch."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any

DEFAULT_DEBOUNCE_MS = 150


class Debouncer:
    """Coalesces rapid edits so only the last one within ``delay`` fires.

    Each :meth:`submit` cancels the pending run and starts a fresh timer;
    nothing queues up behind it.
    """

    def __init__(self, delay: float = DEFAULT_DEBOUNCE_MS / 1000) -> None:
        self._delay = delay
        self._task: asyncio.Task[Any] | None = None

    @classmethod
    def from_millis(cls, delay_ms: int) -> Debouncer:
        return cls(max(delay_ms, 0) / 1000)

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a submitted callback is still waiting to fire."""

        return self._task is not None and not self._task.done()

    def submit(self, callback: Callable[[], Awaitable[Any] | None]) -> None:
        """Schedule ``callback`` (sync or async), cancelling any pending invocation."""

        if self._task:
            self._task.cancel()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._runner(callback))

    def cancel(self) -> None:
        """Cancel any pending invocation."""

        if self._task:
            self._task.cancel()
            self._task = None

    async def _runner(self, callback: Callable[[], Awaitable[Any] | None]) -> None:
        try:
            await asyncio.sleep(self._delay)
            result = callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            return


__all__ = ["DEFAULT_DEBOUNCE_MS", "Debouncer"]
