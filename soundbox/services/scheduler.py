"""Background scheduler for periodic jobs (offline device alerts)."""

import asyncio
import inspect
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class TaskScheduler:
    """Runs registered jobs at fixed intervals on the event loop.

    Blocking jobs are pushed onto a worker thread. A failing job is logged
    and rescheduled; it never stops the loop. State is not persisted.
    """

    def __init__(self, tick_seconds: float = 5):
        self.tick_seconds = tick_seconds
        self._tasks: Dict[str, Dict[str, Any]] = {}
        self._running = False
        self._task_handle: Optional[asyncio.Task] = None

    async def run_task(self, name: str) -> None:
        task = self._tasks[name]
        now = datetime.now(timezone.utc)
        try:
            if inspect.iscoroutinefunction(task["func"]):
                await task["func"]()
            else:
                await asyncio.to_thread(task["func"])
            task["last_run"] = now
            task["run_count"] += 1
            task["last_error"] = None
            logger.debug(f"Scheduled task '{name}' completed")
        except Exception as e:
            task["last_error"] = str(e)
            logger.error(f"Scheduled task '{name}' failed: {e}")
        finally:
            task["next_run"] = now + task["interval"]

    async def start(self):
        self._running = True
        logger.info("Task scheduler started")

        while self._running:
            now = datetime.now(timezone.utc)
            for name, task in list(self._tasks.items()):
                if now >= task["next_run"]:
                    await self.run_task(name)
            await asyncio.sleep(self.tick_seconds)

    def launch(self) -> asyncio.Task:
        self._task_handle = asyncio.create_task(self.start())
        return self._task_handle

    def stop(self):
        self._running = False
        if self._task_handle:
            self._task_handle.cancel()
            self._task_handle = None
        logger.info("Task scheduler stopped")

    def add_task(self, name: str, func: Callable, interval_seconds: int, first_delay_seconds: int = 10):
        self._tasks[name] = {
            "func": func,
            "interval": timedelta(seconds=interval_seconds),
            "next_run": datetime.now(timezone.utc) + timedelta(seconds=first_delay_seconds),
            "last_run": None,
            "run_count": 0,
            "last_error": None,
        }
        logger.info(f"Scheduled task '{name}' every {interval_seconds}s")

    def remove_task(self, name: str):
        self._tasks.pop(name, None)

    def get_status(self) -> Dict[str, Any]:
        return {
            name: {
                "last_run": t["last_run"].isoformat() if t["last_run"] else None,
                "next_run": t["next_run"].isoformat(),
                "interval_seconds": int(t["interval"].total_seconds()),
                "run_count": t["run_count"],
                "last_error": t["last_error"],
            }
            for name, t in self._tasks.items()
        }
