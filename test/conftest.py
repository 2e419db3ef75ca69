#!/usr/bin/env python3
"""Shared fixtures and fakes for the keeper tests."""

import asyncio

import pytest

from unstable_keeper.config import KeeperConfig
from unstable_keeper.errors import SimulationError
from unstable_keeper.models import Confirmation, Eligibility, FeeConditions

TEST_PRIVATE_KEY = "0x" + "a" * 64
TEST_CONTRACT = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
TEST_WALLET = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb7"


class FakeLedgerClient:
    """In-memory stand-in for LedgerClient.

    Every method records its call; failures and delays are configured
    through constructor arguments.
    """

    def __init__(
        self,
        *,
        can_act_now: bool = True,
        next_eligible_time: int = 0,
        estimate: int = 120_000,
        estimate_error: Exception | None = None,
        submission_id: str = "0xabc",
        submit_error: Exception | None = None,
        confirmation: Confirmation = Confirmation(included_at_position=42, consumed_cost=98_000),
        confirm_error: Exception | None = None,
        confirm_delay: float = 0.0,
        balance: int = 10**18,
        fees: FeeConditions = FeeConditions(base_fee=30 * 10**9, suggested_priority_fee=10**9),
        connected: bool = True,
    ) -> None:
        self.can_act_now = can_act_now
        self.next_eligible_time = next_eligible_time
        self.estimate = estimate
        self.estimate_error = estimate_error
        self.submission_id = submission_id
        self.submit_error = submit_error
        self.confirmation = confirmation
        self.confirm_error = confirm_error
        self.confirm_delay = confirm_delay
        self.balance = balance
        self.fees = fees
        self.connected = connected

        self.address = TEST_WALLET
        self.rpc_url = "http://localhost:8545"
        self.calls: list[tuple] = []

        # Attempts are counted open from the balance read to the end of confirmation
        self.active = 0
        self.max_active = 0
        self.confirm_started = asyncio.Event()

    async def is_connected(self) -> bool:
        return self.connected

    async def chain_id(self) -> int:
        return 11155111

    async def current_balance(self, address: str | None = None) -> int:
        self.calls.append(("current_balance", address))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        return self.balance

    async def current_fee_conditions(self) -> FeeConditions:
        self.calls.append(("current_fee_conditions",))
        return self.fees

    async def read_eligibility(self, target: str) -> Eligibility:
        self.calls.append(("read_eligibility", target))
        return Eligibility(can_act_now=self.can_act_now, next_eligible_time=self.next_eligible_time)

    async def estimate_action_cost(self, target: str, action: str) -> int:
        self.calls.append(("estimate_action_cost", target, action))
        if self.estimate_error:
            self.active -= 1
            raise self.estimate_error
        if not self.can_act_now:
            self.active -= 1
            raise SimulationError(f"{action}() would revert: execution reverted: Cooldown active")
        return self.estimate

    async def submit_action(
        self, target, action, cost_ceiling, priority_fee, estimated_cost=None, base_fee=None
    ) -> str:
        self.calls.append(("submit_action", target, action, cost_ceiling, priority_fee, estimated_cost, base_fee))
        if self.submit_error:
            self.active -= 1
            raise self.submit_error
        return self.submission_id

    async def await_confirmation(self, submission_id: str) -> Confirmation:
        self.calls.append(("await_confirmation", submission_id))
        self.confirm_started.set()
        try:
            if self.confirm_delay:
                await asyncio.sleep(self.confirm_delay)
            if self.confirm_error:
                raise self.confirm_error
            return self.confirmation
        finally:
            self.active -= 1

    def reconfigure(self, rpc_url: str) -> None:
        self.calls.append(("reconfigure", rpc_url))
        self.rpc_url = rpc_url

    def called(self, name: str) -> bool:
        return any(call[0] == name for call in self.calls)


@pytest.fixture
def keeper_config() -> KeeperConfig:
    """A valid configuration with defaults for everything optional."""
    return KeeperConfig(
        private_key=TEST_PRIVATE_KEY,
        rpc_url="https://rpc.sepolia.org",
        contract_address=TEST_CONTRACT
    )


@pytest.fixture
def fake_client() -> FakeLedgerClient:
    return FakeLedgerClient()
