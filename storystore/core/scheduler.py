"""Next-turn scheduling for deferred notifications.

Selection changes reach local listeners on a later turn, never inside the
call that made the change. The scheduler is the seam that makes this
deterministic in tests: ``ManualScheduler`` holds callbacks until
``flush()``, ``AsyncioScheduler`` hands them to the running event loop.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from typing import Any, Deque, Optional, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


class Scheduler(Protocol):
    """Defers a callback to a later scheduling turn."""

    def call_soon(self, callback: Callback, *args: Any) -> None: ...

    def flush(self) -> int: ...


class ManualScheduler:
    """Queues callbacks until ``flush()`` is called."""

    def __init__(self) -> None:
        self._pending: Deque[tuple[Callback, tuple[Any, ...]]] = deque()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def call_soon(self, callback: Callback, *args: Any) -> None:
        self._pending.append((callback, args))

    def flush(self) -> int:
        """Run queued callbacks, including ones queued while flushing.

        Returns the number of callbacks run.
        """
        ran = 0
        while self._pending:
            callback, args = self._pending.popleft()
            callback(*args)
            ran += 1
        return ran


class AsyncioScheduler(ManualScheduler):
    """Defers callbacks to the event loop's next iteration.

    Outside a running loop callbacks are queued and run by ``flush()``, or
    handed to the loop, oldest first, once one is running.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        super().__init__()
        self._loop = loop
        self._warned_no_loop = False

    def _target_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def call_soon(self, callback: Callback, *args: Any) -> None:
        loop = self._target_loop()
        if loop is None:
            if not self._warned_no_loop:
                logger.warning(
                    "No running event loop; deferred notifications wait for "
                    "flush_notifications() or a running loop"
                )
                self._warned_no_loop = True
            super().call_soon(callback, *args)
            return
        while self._pending:
            queued, queued_args = self._pending.popleft()
            loop.call_soon_threadsafe(queued, *queued_args)
        loop.call_soon_threadsafe(callback, *args)


def create_scheduler(kind: str) -> Scheduler:
    """Build the scheduler named by the ``scheduler`` setting."""
    if kind == "manual":
        return ManualScheduler()
    if kind == "asyncio":
        return AsyncioScheduler()
    raise ValueError(f"Unknown scheduler: {kind}")
