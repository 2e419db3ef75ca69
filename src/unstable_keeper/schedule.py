"""Action trigger schedules.

A schedule only answers one question: how long to wait from ``now`` until
the next action fire. The scheduler asks again after every attempt, so a
fire that falls inside a long attempt is deferred rather than queued.
"""

import math
from datetime import datetime, timezone
from typing import Protocol

from croniter import croniter


class Schedule(Protocol):
    """Anything that can compute the delay to the next fire."""

    def next_delay(self, now: datetime) -> float: ...


class CronSchedule:
    """Fires on a 5-field cron expression, evaluated in UTC."""

    def __init__(self, expression: str) -> None:
        if not croniter.is_valid(expression):
            raise ValueError(f"Invalid cron expression: {expression!r}")
        self.expression = expression

    def next_delay(self, now: datetime) -> float:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        next_fire: datetime = croniter(self.expression, now).get_next(datetime)
        return max(0.0, (next_fire - now).total_seconds())

    def __repr__(self) -> str:
        return f"CronSchedule({self.expression!r})"


class IntervalSchedule:
    """Fires every fixed number of seconds."""

    def __init__(self, seconds: float) -> None:
        if not math.isfinite(seconds) or seconds <= 0:
            raise ValueError(f"Interval must be a positive finite number, got {seconds}")
        self.seconds = float(seconds)

    def next_delay(self, now: datetime) -> float:
        return self.seconds

    def __repr__(self) -> str:
        return f"IntervalSchedule({self.seconds})"


def schedule_from_expression(expression: str) -> CronSchedule | IntervalSchedule:
    """Build a schedule from a cron expression or a plain number of seconds.

    Args:
        expression: e.g. ``"*/10 * * * *"`` or ``"600"``

    Returns:
        The matching schedule

    Raises:
        ValueError: If the expression is neither
    """
    expression = expression.strip()
    try:
        seconds = float(expression)
    except ValueError:
        return CronSchedule(expression)
    return IntervalSchedule(seconds)
