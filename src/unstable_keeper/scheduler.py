"""
Dual-cadence scheduler for the keeper.

Runs a heartbeat loop and an action loop as two independent asyncio tasks.
The action loop awaits each attempt to completion before asking the
schedule for the next fire, so at most one attempt is ever in flight.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from .models import HeartbeatEvent

if TYPE_CHECKING:
    from .action_executor import ActionExecutor
    from .reporter import OutcomeReporter
    from .schedule import Schedule

logger = logging.getLogger(__name__)


class KeeperScheduler:
    """
    Drives the heartbeat and action triggers until stopped.

    Both loops start with run() and end when stop() is called. Stopping
    cancels the action task, abandoning any confirmation wait in progress.
    """

    HEALTH_CHECK_INTERVAL = 1.0  # seconds

    def __init__(
        self,
        executor: "ActionExecutor",
        reporter: "OutcomeReporter",
        schedule: "Schedule",
        heartbeat_interval: float = 60
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            executor: Runs one attempt per action fire
            reporter: Receives heartbeat events
            schedule: Computes the delay until the next action fire
            heartbeat_interval: Seconds between heartbeats
        """
        self.executor = executor
        self.reporter = reporter
        self.schedule = schedule
        self.heartbeat_interval = heartbeat_interval

        self.running = False
        self.shutdown_event = asyncio.Event()

        self.heartbeats_emitted = 0
        self.attempts_started = 0
        self.in_flight = 0

    async def _heartbeat_loop(self) -> None:
        """Emit a heartbeat every interval, regardless of attempts in progress."""
        while self.running:
            await asyncio.sleep(self.heartbeat_interval)
            if not self.running:
                break
            self.heartbeats_emitted += 1
            self.reporter.heartbeat(
                HeartbeatEvent(timestamp=datetime.now(timezone.utc), sequence=self.heartbeats_emitted)
            )

    async def _action_loop(self) -> None:
        """Fire the executor on schedule, one attempt at a time."""
        while self.running:
            delay = self.schedule.next_delay(datetime.now(timezone.utc))
            logger.debug(f"Next action attempt in {delay:.1f} seconds")
            await asyncio.sleep(delay)
            if not self.running:
                break

            self.attempts_started += 1
            self.in_flight += 1
            try:
                await self.executor.attempt()
            except Exception as e:
                # The executor should never raise; keep the timer alive if it does
                logger.error(f"Error in action loop: {e}", exc_info=True)
            finally:
                self.in_flight -= 1

    async def _check_task_health(self, tasks: dict[str, asyncio.Task]) -> bool:
        """Check if any loop has ended unexpectedly."""
        for name, task in tasks.items():
            if task.done():
                try:
                    await task
                except Exception as e:
                    logger.error(f"{name} task failed: {e}", exc_info=True)
                return False
        return True

    async def _cleanup_tasks(self, tasks: dict[str, asyncio.Task]) -> None:
        """Cancel all running tasks."""
        for name, task in tasks.items():
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    logger.debug(f"{name} task cancelled")

    async def run(self) -> None:
        """Run both loops until stop() is called."""
        self.running = True
        logger.info(
            f"Scheduler starting: heartbeat every {self.heartbeat_interval}s, actions on {self.schedule!r}"
        )

        tasks: dict[str, asyncio.Task] = {
            "heartbeat": asyncio.create_task(self._heartbeat_loop()),
            "action": asyncio.create_task(self._action_loop()),
        }
        try:
            while self.running:
                try:
                    await asyncio.wait_for(self.shutdown_event.wait(), timeout=self.HEALTH_CHECK_INTERVAL)
                    break  # Shutdown requested
                except asyncio.TimeoutError:
                    pass

                if not await self._check_task_health(tasks):
                    logger.error("Scheduler loop ended unexpectedly, shutting down")
                    break
        finally:
            self.running = False
            await self._cleanup_tasks(tasks)
            logger.info("Scheduler stopped")

    def stop(self) -> None:
        """Stop both loops; no new attempts start after this."""
        self.running = False
        self.shutdown_event.set()
