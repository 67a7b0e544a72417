"""
Background auto-optimization.

Runs the auto_optimize handler once after a short startup delay and then on a
fixed interval. Each run is independent: a failure is recorded and the loop
carries on, until the cumulative failure count passes the configured
threshold. At that point the scheduler disables auto-optimization and stops
attempting runs.
"""

import asyncio
import traceback
from enum import Enum
from typing import Any, Callable, Dict, Optional

from loguru import logger

from okcomputer.core.config import Settings
from okcomputer.core.models import ErrorRecord, OptimizationPriority, ToolResult
from okcomputer.state.store import StateStore

OptimizeHandler = Callable[[Dict[str, Any]], ToolResult]


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    SKIPPED_TOO_SOON = "skipped_too_soon"
    FAILED = "failed"


class AutoOptimizationScheduler:
    """
    Drives periodic optimization against a StateStore.

    ``run_once`` is the single unit of work and is what both the startup
    trigger and the interval loop call; tests call it directly.
    """

    def __init__(
        self,
        state: StateStore,
        handler: OptimizeHandler,
        settings: Optional[Settings] = None,
    ):
        self.state = state
        self.handler = handler
        self.settings = settings or state.settings

        self.status = SchedulerState.IDLE
        self.attempts = 0
        self._tasks: list[asyncio.Task] = []

    @property
    def enabled(self) -> bool:
        return self.state.auto_optimization.enabled

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def run_once(self) -> SchedulerState:
        """Attempt one optimization; never raises"""
        if not self.enabled:
            logger.debug("Auto-optimization disabled; skipping scheduled run")
            return self.status

        self.status = SchedulerState.RUNNING
        self.attempts += 1
        errors_before = self.state.performance.error_count
        try:
            result = self.handler({"priority": OptimizationPriority.BALANCED.value, "force": False})
            if not isinstance(result, ToolResult) or not result.content or not result.text:
                raise ValueError("Auto-optimization returned an invalid result")
            if result.is_error:
                raise ValueError(f"Auto-optimization reported an error: {result.text}")
        except Exception as e:
            self._record_failure(e, recorded=self.state.performance.error_count > errors_before)
            return self.status

        if result.data.get("status") == "skipped":
            self.status = SchedulerState.SKIPPED_TOO_SOON
        else:
            self.status = SchedulerState.SUCCESS
            logger.info("Scheduled auto-optimization completed")
        return self.status

    def _record_failure(self, error: Exception, recorded: bool = False) -> None:
        """
        Count a failed run. ``recorded`` means the fault already reached the
        global error metrics (the dispatcher records handler faults itself).
        """
        self.status = SchedulerState.FAILED
        record = ErrorRecord(
            tool="auto_optimize",
            message=str(error),
            timestamp=self.state.now_iso(),
            stack=traceback.format_exc(),
        )
        if not recorded:
            self.state.record_error(record)
        failures = self.state.record_optimization_failure(record)
        logger.error(
            "Scheduled auto-optimization failed ({failures} total): {error}",
            failures=failures, error=str(error),
        )

        if failures > self.settings.AUTO_OPTIMIZE_FAILURE_THRESHOLD:
            self.state.set_auto_optimization_enabled(False)
            logger.critical(
                "Auto-optimization disabled after {failures} failures",
                failures=failures,
            )

    async def start(self) -> None:
        """Schedule the startup run and the interval loop on the running loop"""
        if self.is_running:
            return
        if not self.enabled:
            logger.info("Auto-optimization disabled; scheduler not started")
            return

        self._tasks = [
            asyncio.create_task(self._run_after(self.settings.AUTO_OPTIMIZE_STARTUP_DELAY_S)),
            asyncio.create_task(self._interval_loop()),
        ]
        logger.info(
            "Auto-optimization scheduler started (interval {interval}ms)",
            interval=self.state.auto_optimization.interval,
        )

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Auto-optimization scheduler stopped")

    async def _run_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._tick()

    async def _interval_loop(self) -> None:
        interval_s = self.state.auto_optimization.interval / 1000
        while self.enabled:
            await asyncio.sleep(interval_s)
            self._tick()
        logger.info("Auto-optimization loop exited (disabled)")

    def _tick(self) -> None:
        try:
            self.run_once()
        except Exception as e:
            # run_once records its own failures; anything here is a scheduler bug
            logger.error("Unexpected scheduler error: {error}", error=str(e))
