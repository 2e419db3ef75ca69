"""
UnstableCoin keeper package.

Unattended service that periodically attempts to destabilize the
UnstableCoin contract, respecting its on-chain cooldown.
"""

from .action_executor import ActionExecutor
from .config import KeeperConfig
from .errors import (
    ConfigurationError,
    ConfirmationError,
    ConfirmationTimeoutError,
    KeeperError,
    NetworkError,
    SimulationError,
    SubmissionError,
)
from .keeper import Keeper
from .ledger_client import LedgerClient
from .models import AttemptOutcome, AttemptReason
from .reporter import OutcomeReporter
from .scheduler import KeeperScheduler
from .stats import StatsReader

__all__ = [
    "ActionExecutor",
    "AttemptOutcome",
    "AttemptReason",
    "ConfigurationError",
    "ConfirmationError",
    "ConfirmationTimeoutError",
    "Keeper",
    "KeeperConfig",
    "KeeperError",
    "KeeperScheduler",
    "LedgerClient",
    "NetworkError",
    "OutcomeReporter",
    "SimulationError",
    "StatsReader",
    "SubmissionError",
]
__version__ = "0.1.0"
