#!/usr/bin/env python3
"""Tests for the dual-cadence scheduler."""

import asyncio
from unittest.mock import MagicMock

import pytest

from unstable_keeper.action_executor import ActionExecutor
from unstable_keeper.models import AttemptOutcome
from unstable_keeper.schedule import IntervalSchedule
from unstable_keeper.scheduler import KeeperScheduler

from conftest import FakeLedgerClient


class HeldExecutor:
    """Executor stub whose attempts stay open for a fixed time."""

    def __init__(self, hold: float) -> None:
        self.hold = hold
        self.scheduler: KeeperScheduler | None = None
        self.heartbeats_during: list[int] = []

    async def attempt(self) -> AttemptOutcome:
        before = self.scheduler.heartbeats_emitted
        await asyncio.sleep(self.hold)
        self.heartbeats_during.append(self.scheduler.heartbeats_emitted - before)
        return AttemptOutcome(success=True)


async def run_for(scheduler: KeeperScheduler, seconds: float) -> None:
    task = asyncio.create_task(scheduler.run())
    await asyncio.sleep(seconds)
    scheduler.stop()
    await asyncio.wait_for(task, timeout=2)


class TestKeeperScheduler:
    """Test suite for KeeperScheduler."""

    @pytest.mark.asyncio
    async def test_at_most_one_attempt_in_flight(self, keeper_config):
        """Test that a slow confirmation defers the next fire instead of overlapping it."""
        client = FakeLedgerClient(confirm_delay=0.05)
        executor = ActionExecutor(keeper_config, client, MagicMock())
        scheduler = KeeperScheduler(
            executor, MagicMock(), IntervalSchedule(0.01), heartbeat_interval=10
        )

        await run_for(scheduler, 0.3)

        assert scheduler.attempts_started >= 2
        assert client.max_active == 1

    @pytest.mark.asyncio
    async def test_heartbeats_continue_during_long_attempt(self):
        """Test that heartbeats keep their cadence while an attempt is held open for 5 periods."""
        period = 0.05
        executor = HeldExecutor(hold=5 * period)
        reporter = MagicMock()
        scheduler = KeeperScheduler(
            executor, reporter, IntervalSchedule(0.001), heartbeat_interval=period
        )
        executor.scheduler = scheduler

        await run_for(scheduler, 0.4)

        assert executor.heartbeats_during
        assert executor.heartbeats_during[0] >= 4
        assert reporter.heartbeat.call_count == scheduler.heartbeats_emitted

    @pytest.mark.asyncio
    async def test_heartbeat_sequence_numbers(self):
        reporter = MagicMock()
        executor = MagicMock()
        scheduler = KeeperScheduler(executor, reporter, IntervalSchedule(60), heartbeat_interval=0.01)

        await run_for(scheduler, 0.1)

        sequences = [call.args[0].sequence for call in reporter.heartbeat.call_args_list]
        assert sequences == list(range(1, len(sequences) + 1))
        assert len(sequences) >= 3

    @pytest.mark.asyncio
    async def test_stop_abandons_in_flight_confirmation(self, keeper_config):
        """Test that shutdown does not wait for, or report, an in-flight confirmation."""
        client = FakeLedgerClient(confirm_delay=30)
        reporter = MagicMock()
        executor = ActionExecutor(keeper_config, client, reporter)
        scheduler = KeeperScheduler(executor, reporter, IntervalSchedule(0.01), heartbeat_interval=10)

        task = asyncio.create_task(scheduler.run())
        await asyncio.wait_for(client.confirm_started.wait(), timeout=2)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=2)

        reporter.attempt_started.assert_called_once()
        reporter.attempt_finished.assert_not_called()
        assert scheduler.in_flight == 0

    @pytest.mark.asyncio
    async def test_no_attempt_after_stop(self):
        executor = MagicMock()
        scheduler = KeeperScheduler(executor, MagicMock(), IntervalSchedule(60), heartbeat_interval=60)
        scheduler.stop()

        await asyncio.wait_for(scheduler.run(), timeout=2)

        executor.attempt.assert_not_called()
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_executor_exception_does_not_stop_timer(self):
        """Test that the action loop re-arms even if an attempt raises."""
        calls = 0

        class FlakyExecutor:
            async def attempt(self):
                nonlocal calls
                calls += 1
                raise RuntimeError("unexpected")

        scheduler = KeeperScheduler(FlakyExecutor(), MagicMock(), IntervalSchedule(0.01), heartbeat_interval=60)

        await run_for(scheduler, 0.15)

        assert calls >= 2
