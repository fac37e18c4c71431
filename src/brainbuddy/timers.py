"""Cooperative timers run on the caller's thread.

Nothing here starts a thread: the owner calls run_pending() from its event
loop (the CLI does so between commands), and each due task runs to completion
before the next one starts.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class _Task:
    name: str
    callback: Callable[[], object]
    interval: Optional[float]
    next_due: float


class Scheduler:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._tasks: dict[str, _Task] = {}

    def every(self, name: str, interval: float, callback: Callable[[], object],
              run_immediately: bool = False) -> None:
        """Register (or replace) a repeating task."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        now = self.clock()
        self._tasks[name] = _Task(name, callback, interval, now if run_immediately else now + interval)

    def call_soon(self, name: str, callback: Callable[[], object]) -> None:
        """Queue a one-shot task for the next pass; queuing the same name twice runs it once."""
        if name in self._tasks and self._tasks[name].interval is None:
            return
        self._tasks[name] = _Task(name, callback, None, self.clock())

    def cancel(self, name: str) -> None:
        self._tasks.pop(name, None)

    def cancel_all(self) -> None:
        self._tasks.clear()

    def scheduled(self) -> list[str]:
        return sorted(self._tasks)

    def run_pending(self, now: Optional[float] = None) -> list[str]:
        """Run every due task once, oldest due first. Returns the names that ran."""
        now = self.clock() if now is None else now
        due = sorted((t for t in self._tasks.values() if t.next_due <= now), key=lambda t: t.next_due)
        ran = []
        for task in due:
            if self._tasks.get(task.name) is not task:
                # cancelled or replaced by an earlier task in this pass
                continue
            if task.interval is None:
                del self._tasks[task.name]
            else:
                task.next_due = now + task.interval
            try:
                task.callback()
            except Exception:
                logger.exception(f"Scheduled task {task.name!r} failed")
            ran.append(task.name)
        return ran
