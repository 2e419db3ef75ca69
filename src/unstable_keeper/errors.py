#!/usr/bin/env python3
"""Error taxonomy for the keeper.

Every error raised while attempting the action carries the AttemptReason
it maps to, so the executor can turn it into an outcome without a lookup
table. ConfigurationError is the only one that is fatal.
"""

from typing import ClassVar

from .models import AttemptReason


class KeeperError(Exception):
    """Base class for all keeper errors."""

    reason: ClassVar[AttemptReason] = AttemptReason.UNEXPECTED_ERROR


class ConfigurationError(KeeperError, ValueError):
    """Required configuration is missing or invalid (startup only)."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing: list[str] = list(missing or [])


class NetworkError(KeeperError):
    """Transport or connectivity failure talking to the RPC endpoint."""

    reason = AttemptReason.NETWORK_ERROR


class SimulationError(KeeperError):
    """The node predicts the action would revert (usually: cooldown active)."""

    reason = AttemptReason.PRECONDITION_NOT_MET


class SubmissionError(KeeperError):
    """The transaction was refused before or during broadcast."""

    reason = AttemptReason.SUBMISSION_ERROR


class ConfirmationError(KeeperError):
    """The transaction was mined but reverted."""

    reason = AttemptReason.CONFIRMATION_ERROR

    def __init__(self, message: str, submission_id: str | None = None,
                 included_at_position: int | None = None) -> None:
        super().__init__(message)
        self.submission_id = submission_id
        self.included_at_position = included_at_position


class ConfirmationTimeoutError(KeeperError):
    """No receipt was observed within the confirmation timeout."""

    reason = AttemptReason.CONFIRMATION_TIMEOUT
