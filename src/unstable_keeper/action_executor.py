#!/usr/bin/env python3
"""Action execution for the keeper.

This module runs one destabilization attempt end to end: read balance and
fees, simulate, submit, confirm. Estimation always comes first so an
action that would revert (the contract's cooldown has not elapsed) is
never broadcast and never paid for.
"""

import logging
from typing import TYPE_CHECKING

from web3 import Web3

from .errors import KeeperError
from .models import ActionAttempt, AttemptOutcome, AttemptReason

if TYPE_CHECKING:
    from .config import KeeperConfig
    from .ledger_client import LedgerClient
    from .reporter import OutcomeReporter

logger = logging.getLogger(__name__)

ACTION_NAME = "destabilize"


class ActionExecutor:
    """Runs a single attempt and turns every failure into an AttemptOutcome."""

    def __init__(
        self,
        config: "KeeperConfig",
        client: "LedgerClient",
        reporter: "OutcomeReporter"
    ) -> None:
        """
        Initialize the ActionExecutor.

        Args:
            config: Keeper configuration (target, cost ceiling, fee floor)
            client: Ledger session used for every remote call
            reporter: Receives attempt start and outcome
        """
        self.config = config
        self.client = client
        self.reporter = reporter

    async def attempt(self) -> AttemptOutcome:
        """
        Run one attempt. Never raises, except for task cancellation.

        Returns:
            The structured outcome of the attempt
        """
        attempt = ActionAttempt()
        self.reporter.attempt_started(attempt)

        try:
            outcome = await self._run(attempt)
        except KeeperError as e:
            outcome = attempt.failed(e.reason, str(e))
        except Exception as e:
            logger.error(f"Unexpected error during attempt: {e}", exc_info=True)
            outcome = attempt.failed(AttemptReason.UNEXPECTED_ERROR, f"{type(e).__name__}: {e}")

        self.reporter.attempt_finished(outcome)
        return outcome

    async def _run(self, attempt: ActionAttempt) -> AttemptOutcome:
        target = self.config.contract_address

        # Step 1: informational reads
        balance = await self.client.current_balance()
        fees = await self.client.current_fee_conditions()
        logger.info(f"Wallet: {self.client.address}")
        logger.info(f"Balance: {Web3.from_wei(balance, 'ether')} ETH")
        logger.info(
            f"Base fee: {Web3.from_wei(fees.base_fee, 'gwei')} gwei, "
            f"suggested priority fee: {Web3.from_wei(fees.suggested_priority_fee, 'gwei')} gwei"
        )
        try:
            eligibility = await self.client.read_eligibility(target)
            logger.info(
                f"Contract reports canDestabilizeNow={eligibility.can_act_now} "
                f"nextEligibleTime={eligibility.next_eligible_time}"
            )
        except KeeperError as e:
            # The estimate below is authoritative; this read is only for the log
            logger.debug(f"Could not read eligibility: {e}")

        # Step 2: simulate; a predicted revert ends the attempt here
        attempt.estimated_cost = await self.client.estimate_action_cost(target, ACTION_NAME)
        logger.info(f"Estimated gas: {attempt.estimated_cost}")

        # Step 3: submit
        priority_fee = max(self.config.max_priority_fee_per_gas, fees.suggested_priority_fee)
        attempt.submission_id = await self.client.submit_action(
            target,
            ACTION_NAME,
            cost_ceiling=self.config.gas_limit,
            priority_fee=priority_fee,
            estimated_cost=attempt.estimated_cost,
            base_fee=fees.base_fee
        )
        logger.info(f"Transaction sent: {attempt.submission_id}")

        # Step 4: confirm
        try:
            confirmation = await self.client.await_confirmation(attempt.submission_id)
        except KeeperError as e:
            attempt.included_at_position = getattr(e, "included_at_position", None)
            raise
        attempt.included_at_position = confirmation.included_at_position
        attempt.consumed_cost = confirmation.consumed_cost
        attempt.effective_gas_price = confirmation.effective_gas_price

        # Step 5
        return attempt.succeeded()
