#!/usr/bin/env python3
"""Data models for the keeper.

All of these are transient: they live for one tick (ActionAttempt,
AttemptOutcome, HeartbeatEvent) or one read (FeeConditions, Eligibility,
ContractStats). Nothing is persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class AttemptReason(Enum):
    """Why an attempt did not succeed."""
    PRECONDITION_NOT_MET = "PreconditionNotMet"
    NETWORK_ERROR = "NetworkError"
    SUBMISSION_ERROR = "SubmissionError"
    CONFIRMATION_ERROR = "ConfirmationError"
    CONFIRMATION_TIMEOUT = "ConfirmationTimeoutError"
    UNEXPECTED_ERROR = "UnexpectedError"

    @property
    def is_expected(self) -> bool:
        """True for outcomes that are routine rather than errors."""
        return self is AttemptReason.PRECONDITION_NOT_MET

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class FeeConditions:
    """Fee market snapshot from the latest block.

    Attributes:
        base_fee: Base fee per gas of the latest block (wei)
        suggested_priority_fee: Node-suggested priority fee per gas (wei)
    """

    base_fee: int
    suggested_priority_fee: int


@dataclass(frozen=True, slots=True)
class Eligibility:
    """Remote view of the cooldown, as reported by the contract."""

    can_act_now: bool
    next_eligible_time: int


@dataclass(frozen=True, slots=True)
class Confirmation:
    """Receipt details of an included transaction.

    Attributes:
        included_at_position: Block number the transaction was included in
        consumed_cost: Gas used by the transaction
        effective_gas_price: Price actually paid per gas (wei), if reported
    """

    included_at_position: int
    consumed_cost: int
    effective_gas_price: int | None = None


@dataclass(frozen=True, slots=True)
class HeartbeatEvent:
    """Liveness marker emitted on the heartbeat cadence."""

    timestamp: datetime
    sequence: int = 0


@dataclass(frozen=True, slots=True)
class AttemptOutcome:
    """Structured result of one attempt.

    A successful outcome has no reason; a failed one always does.
    """

    success: bool
    reason: AttemptReason | None = None
    detail: str = ""
    submission_id: str | None = None
    included_at_position: int | None = None
    consumed_cost: int | None = None
    effective_gas_price: int | None = None
    estimated_cost: int | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def duration(self) -> float | None:
        """Seconds between start and finish, if both are known."""
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


@dataclass(slots=True)
class ActionAttempt:
    """Mutable record of the attempt currently in flight.

    Filled in step by step by the executor and turned into an
    AttemptOutcome once the attempt resolves.
    """

    started_at: datetime = field(default_factory=utcnow)
    estimated_cost: int | None = None
    submission_id: str | None = None
    included_at_position: int | None = None
    consumed_cost: int | None = None
    effective_gas_price: int | None = None

    def succeeded(self) -> AttemptOutcome:
        return AttemptOutcome(
            success=True,
            submission_id=self.submission_id,
            included_at_position=self.included_at_position,
            consumed_cost=self.consumed_cost,
            effective_gas_price=self.effective_gas_price,
            estimated_cost=self.estimated_cost,
            started_at=self.started_at,
            finished_at=utcnow(),
        )

    def failed(self, reason: AttemptReason, detail: str = "") -> AttemptOutcome:
        return AttemptOutcome(
            success=False,
            reason=reason,
            detail=detail,
            submission_id=self.submission_id,
            included_at_position=self.included_at_position,
            consumed_cost=self.consumed_cost,
            estimated_cost=self.estimated_cost,
            started_at=self.started_at,
            finished_at=utcnow(),
        )


@dataclass(frozen=True, slots=True)
class ContractStats:
    """Read-only statistics published by the UnstableCoin contract.

    Token amounts are in whole tokens (18 decimals already applied).
    cooldown_remaining is derived from next_eligible_time at read time.
    """

    holder_count: int
    total_supply: Decimal
    total_burned: Decimal
    total_minted: Decimal
    action_count: int
    eliminated_count: int
    can_act_now: bool
    next_eligible_time: int
    cooldown_remaining: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "holder_count": self.holder_count,
            "total_supply": str(self.total_supply),
            "total_burned": str(self.total_burned),
            "total_minted": str(self.total_minted),
            "action_count": self.action_count,
            "eliminated_count": self.eliminated_count,
            "can_act_now": self.can_act_now,
            "next_eligible_time": self.next_eligible_time,
            "cooldown_remaining": self.cooldown_remaining,
        }
