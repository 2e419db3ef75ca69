#!/usr/bin/env python3
"""Outcome reporting for the keeper.

Operators only ever see the log stream, so every event the keeper goes
through is emitted here as one structured line. Nothing in the keeper
makes decisions based on what is reported, and no method here may raise.
"""

import functools
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from web3 import Web3

from .models import ActionAttempt, AttemptOutcome, ContractStats, HeartbeatEvent

if TYPE_CHECKING:
    from .config import KeeperConfig

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., None])


def _never_raises(method: F) -> F:
    """Swallow and debug-log anything a reporting method raises."""

    @functools.wraps(method)
    def wrapper(self: "OutcomeReporter", *args: Any, **kwargs: Any) -> None:
        try:
            method(self, *args, **kwargs)
        except Exception:
            logger.debug(f"Reporter failed in {method.__name__}", exc_info=True)

    return wrapper  # type: ignore[return-value]


def _fields(**values: Any) -> str:
    return " ".join(f"{key}={value}" for key, value in values.items() if value is not None)


class OutcomeReporter:
    """Formats keeper events as structured log lines."""

    def __init__(self, logger_: logging.Logger | None = None) -> None:
        self.logger = logger_ or logger

    @_never_raises
    def process_started(self, config: "KeeperConfig", address: str, chain_id: int | None) -> None:
        config.log_config()
        self.logger.info(
            "🚀 Keeper started "
            + _fields(
                wallet=address,
                chain_id=chain_id,
                contract=config.contract_address,
                schedule=repr(config.cron_schedule),
                heartbeat=f"{config.heartbeat_interval}s"
            )
        )

    @_never_raises
    def heartbeat(self, event: HeartbeatEvent) -> None:
        self.logger.info(
            "Keeper service is running "
            + _fields(event="heartbeat", seq=event.sequence, at=event.timestamp.isoformat())
        )

    @_never_raises
    def attempt_started(self, attempt: ActionAttempt) -> None:
        self.logger.info(
            "Starting destabilization attempt "
            + _fields(event="attempt_start", at=attempt.started_at.isoformat())
        )

    @_never_raises
    def attempt_finished(self, outcome: AttemptOutcome) -> None:
        duration = f"{outcome.duration:.2f}s" if outcome.duration is not None else None

        if outcome.success:
            self.logger.info(
                "✓ Destabilization successful "
                + _fields(
                    event="attempt_success",
                    tx=outcome.submission_id,
                    block=outcome.included_at_position,
                    gas_used=outcome.consumed_cost,
                    gas_estimated=outcome.estimated_cost,
                    gas_price_gwei=(
                        Web3.from_wei(outcome.effective_gas_price, 'gwei')
                        if outcome.effective_gas_price is not None else None
                    ),
                    duration=duration
                )
            )
            return

        line = _fields(
            event="attempt_failed",
            reason=outcome.reason,
            tx=outcome.submission_id,
            block=outcome.included_at_position,
            gas_estimated=outcome.estimated_cost,
            duration=duration,
            detail=repr(outcome.detail) if outcome.detail else None
        )
        # Landing inside the cooldown window is the common case, not an error
        if outcome.reason is not None and outcome.reason.is_expected:
            self.logger.info(f"Destabilization not possible yet {line}")
        else:
            self.logger.error(f"✗ Destabilization failed {line}")

    @_never_raises
    def process_stopped(self, reason: str = "shutdown requested") -> None:
        self.logger.info("🛑 Keeper stopped " + _fields(reason=repr(reason)))

    @_never_raises
    def preflight(
        self,
        *,
        connected: bool,
        chain_id: int | None = None,
        address: str | None = None,
        balance: int | None = None,
        estimated_cost: int | None = None,
        estimate_error: str | None = None
    ) -> None:
        if not connected:
            self.logger.error("✗ Preflight: endpoint unreachable")
            return
        self.logger.info(
            "✓ Preflight: connected "
            + _fields(
                chain_id=chain_id,
                wallet=address,
                balance_eth=Web3.from_wei(balance, 'ether') if balance is not None else None
            )
        )
        if estimated_cost is not None:
            self.logger.info(f"✓ Preflight: gas estimation successful gas={estimated_cost}")
        elif estimate_error:
            self.logger.info(
                f"Preflight: gas estimation failed ({estimate_error}); "
                "this is normal while the cooldown is active"
            )

    @_never_raises
    def stats(self, stats: ContractStats) -> None:
        self.logger.info("Contract statistics " + _fields(**stats.to_dict()))
