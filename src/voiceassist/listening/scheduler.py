"""Cancellable delayed tasks on the running event loop."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from ..debug import debug_log


Callback = Callable[[], Union[Awaitable[Any], Any]]


class ScheduledTask:
    """Handle for a callback scheduled to run after a delay."""

    def __init__(self, delay: float, callback: Callback, name: str = "task"):
        self.delay = delay
        self.name = name
        self._callback = callback
        self._fired = False
        self._task: asyncio.Task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        self._fired = True
        try:
            result = self._callback()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            debug_log(f"scheduled task '{self.name}' failed: {e}", "state")

    @property
    def pending(self) -> bool:
        """True until the delay elapses (and the task was not cancelled)."""
        return not self._fired and not self._task.done()

    @property
    def fired(self) -> bool:
        return self._fired

    def cancel(self) -> bool:
        """Cancel the task if its delay has not elapsed yet."""
        if not self.pending:
            return False
        self._task.cancel()
        debug_log(f"scheduled task '{self.name}' cancelled", "state")
        return True

    @property
    def done(self) -> bool:
        return self._task.done()

    def stop(self) -> None:
        """Cancel the task even if its callback is already running."""
        if not self._task.done() and self._task is not asyncio.current_task():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the task to finish or be cancelled."""
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class Scheduler:
    """Creates ScheduledTasks and can cancel everything it created."""

    def __init__(self) -> None:
        self._tasks: list[ScheduledTask] = []

    def schedule(self, delay: float, callback: Callback, name: str = "task") -> ScheduledTask:
        self._tasks = [t for t in self._tasks if not t.done]
        task = ScheduledTask(max(0.0, float(delay)), callback, name=name)
        self._tasks.append(task)
        return task

    def pending(self, name: Optional[str] = None) -> list[ScheduledTask]:
        return [t for t in self._tasks if t.pending and (name is None or t.name == name)]

    def cancel_all(self) -> int:
        """Cancel pending tasks and stop running ones. Returns how many were still pending."""
        cancelled = 0
        for t in self._tasks:
            if t.cancel():
                cancelled += 1
            else:
                t.stop()
        self._tasks = []
        return cancelled
