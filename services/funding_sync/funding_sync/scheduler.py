"""Async scheduler that feeds run requests to a single pipeline worker."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

from .config import AppConfig
from .logging import get_logger
from .models import RunResult
from .pipeline import SyncPipeline

logger = get_logger(__name__)


class Scheduler:
    """Idle -> Running -> Idle.

    Runs are entered from the cron timer, an on-demand request or the optional
    startup run. All of them go through one queue consumed by one worker.
    """

    def __init__(self, config: AppConfig, pipeline: SyncPipeline) -> None:
        self.config = config
        self.pipeline = pipeline
        self.last_result: Optional[RunResult] = None
        self.next_run: Optional[datetime] = None
        self.running = False
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._pending = False
        self._tasks: list[asyncio.Task] = []
        self._stop_event = asyncio.Event()

    async def start(self) -> None:
        if self._tasks:
            return
        self._stop_event.clear()
        self._tasks = [
            asyncio.create_task(self._run_worker()),
            asyncio.create_task(self._run_timer()),
        ]
        logger.info("scheduler_started", cron=str(self.config.update_cron))
        if self.config.update_on_startup:
            logger.info("scheduler_startup_run")
            self.request_run("startup")
        else:
            logger.info("scheduler_startup_run_disabled")

    async def stop(self) -> None:
        if not self._tasks:
            return
        self._stop_event.set()
        self._queue.put_nowait(None)
        await asyncio.gather(*self._tasks)
        self._tasks = []
        logger.info("scheduler_stopped")

    def request_run(self, trigger: str) -> bool:
        """Enqueue a run. Returns False when a request is already waiting."""
        if self._pending:
            logger.info("run_request_coalesced", trigger=trigger)
            return False
        self._pending = True
        self._queue.put_nowait(trigger)
        logger.info("run_requested", trigger=trigger, running=self.running)
        return True

    async def wait_idle(self) -> None:
        """Block until every queued request has been processed."""
        await self._queue.join()

    async def _run_worker(self) -> None:
        while True:
            trigger = await self._queue.get()
            try:
                if trigger is None or self._stop_event.is_set():
                    break
                self._pending = False
                self.running = True
                try:
                    self.last_result = await asyncio.to_thread(self.pipeline.run, trigger)
                except Exception as exc:  # pragma: no cover
                    logger.exception("scheduler_run_error", trigger=trigger, error=str(exc))
                finally:
                    self.running = False
            finally:
                self._queue.task_done()

    async def _run_timer(self) -> None:
        while not self._stop_event.is_set():
            now = datetime.now(timezone.utc)
            self.next_run = self.config.update_cron.next_after(now)
            delay = (self.next_run - now).total_seconds()
            logger.info("scheduler_next_run", next_run=self.next_run.isoformat())
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                self.request_run("scheduled")
