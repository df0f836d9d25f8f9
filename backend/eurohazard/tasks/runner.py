"""Async periodic task runner (replaces cron expressions).

Includes:
- PeriodicTask: one job on a fixed interval, with its own cancellation handle
- Scheduler: a named set of PeriodicTasks started and stopped together

Each task runs once at start, then every ``interval_seconds``. A tick that
raises is logged and the task waits for its next interval; the interval is
the retry. If a tick fires while the previous run of the same task is still
in flight, the new tick is skipped.
"""
import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import structlog

logger = structlog.get_logger()

TaskFunc = Callable[[], Awaitable[Any]]


class PeriodicTask:
    def __init__(
        self,
        name: str,
        interval_seconds: float,
        func: TaskFunc,
        run_immediately: bool = True,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive for task {name!r}")
        self.name = name
        self.interval_seconds = interval_seconds
        self.func = func
        self.run_immediately = run_immediately

        self._loop_task: asyncio.Task | None = None
        self._current: asyncio.Task | None = None

        self.runs = 0
        self.failures = 0
        self.skipped = 0
        self.last_started_at: datetime | None = None
        self.last_completed_at: datetime | None = None
        self.last_error: str | None = None

    @property
    def is_started(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> bool:
        return self._current is not None and not self._current.done()

    async def run_once(self) -> bool:
        """Execute one tick. Returns False if the task raised."""
        self.runs += 1
        self.last_started_at = datetime.now(timezone.utc)
        try:
            await self.func()
        except Exception as e:
            self.failures += 1
            self.last_error = str(e)[:500]
            logger.error(
                "Scheduled task failed",
                task=self.name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return False
        finally:
            self.last_completed_at = datetime.now(timezone.utc)

        self.last_error = None
        logger.debug("Scheduled task completed", task=self.name)
        return True

    def _tick(self):
        if self.in_flight:
            self.skipped += 1
            logger.warning("Skipping tick, previous run still in flight", task=self.name)
            return
        self._current = asyncio.get_running_loop().create_task(
            self.run_once(), name=f"{self.name}-run"
        )

    async def _loop(self):
        logger.info("Periodic task started", task=self.name, interval_s=self.interval_seconds)
        if self.run_immediately:
            self._tick()
        while True:
            await asyncio.sleep(self.interval_seconds)
            self._tick()

    def start(self):
        """Start the task on the running event loop."""
        if self.is_started:
            logger.warning("Periodic task already running", task=self.name)
            return
        self._loop_task = asyncio.get_running_loop().create_task(
            self._loop(), name=f"{self.name}-loop"
        )

    async def stop(self):
        """Cancel the timer and any run still in flight."""
        for task in (self._loop_task, self._current):
            if task is not None and not task.done():
                task.cancel()
        for task in (self._loop_task, self._current):
            if task is not None:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._loop_task = None
        self._current = None
        logger.info("Periodic task stopped", task=self.name)

    def status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "interval_seconds": self.interval_seconds,
            "started": self.is_started,
            "in_flight": self.in_flight,
            "runs": self.runs,
            "failures": self.failures,
            "skipped": self.skipped,
            "last_started_at": self.last_started_at.isoformat() if self.last_started_at else None,
            "last_completed_at": self.last_completed_at.isoformat() if self.last_completed_at else None,
            "last_error": self.last_error,
        }


class Scheduler:
    """Independent periodic tasks; no task waits on another."""

    def __init__(self):
        self._tasks: dict[str, PeriodicTask] = {}

    def add(
        self,
        name: str,
        interval_seconds: float,
        func: TaskFunc,
        run_immediately: bool = True,
    ) -> PeriodicTask:
        if name in self._tasks:
            raise ValueError(f"Task already registered: {name}")
        task = PeriodicTask(name, interval_seconds, func, run_immediately=run_immediately)
        self._tasks[name] = task
        return task

    @property
    def tasks(self) -> dict[str, PeriodicTask]:
        return dict(self._tasks)

    def start(self):
        for task in self._tasks.values():
            task.start()
        logger.info("Scheduler started", tasks=list(self._tasks))

    async def stop(self):
        await asyncio.gather(*(task.stop() for task in self._tasks.values()))
        logger.info("Scheduler stopped")

    def status(self) -> list[dict[str, Any]]:
        return [task.status() for task in self._tasks.values()]
