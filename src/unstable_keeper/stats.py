#!/usr/bin/env python3
"""Read-only statistics session for the UnstableCoin contract.

The dashboard and the keeper are independent clients of the same contract
state. This session is an explicitly constructed object rather than a
module-wide instance so it can be reconfigured or replaced in tests.
"""

import asyncio
import logging
import time

from web3 import Web3

from .errors import NetworkError
from .models import ContractStats
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)


def cooldown_remaining(next_eligible_time: int, now: int | None = None) -> int:
    """Seconds until the contract allows the next action, never negative.

    Args:
        next_eligible_time: Unix timestamp reported by the contract
        now: Current unix timestamp (defaults to the local clock)
    """
    if now is None:
        now = int(time.time())
    return max(0, next_eligible_time - now)


class StatsReader:
    """Fetches contract statistics over a read-only connection."""

    def __init__(self, rpc_url: str, contract_address: str, request_timeout: float = 30) -> None:
        self.request_timeout = request_timeout
        self.contract_util = ContractUtility(rpc_url)
        self.contract_address = Web3.to_checksum_address(contract_address)

    def reconfigure(self, contract_address: str, rpc_url: str) -> None:
        """Point the session at a different contract and/or endpoint."""
        logger.info(f"Reconfiguring stats reader: contract={contract_address} rpc={rpc_url}")
        self.contract_util = ContractUtility(rpc_url)
        self.contract_address = Web3.to_checksum_address(contract_address)

    async def fetch(self, now: int | None = None) -> ContractStats:
        """
        Read every published statistic in parallel.

        Args:
            now: Unix timestamp used for cooldown_remaining (defaults to local clock)

        Returns:
            A consistent snapshot of the contract statistics

        Raises:
            NetworkError: If any read fails
        """
        functions = self.contract_util.contract(self.contract_address).functions
        try:
            holder_count, total_supply, stats, can_act, next_time = await asyncio.wait_for(
                asyncio.gather(
                    functions.holderCount().call(),
                    functions.totalSupply().call(),
                    functions.getStats().call(),
                    functions.canDestabilizeNow().call(),
                    functions.getNextDestabilizationTime().call()
                ),
                timeout=self.request_timeout
            )
        except asyncio.TimeoutError:
            raise NetworkError(f"Timed out after {self.request_timeout}s reading contract stats") from None
        except Exception as e:
            raise NetworkError(f"Failed to read contract stats: {e}") from e

        # getStats() -> (supply, burned, minted, destabilizations, timeSinceLast, eliminated)
        _, total_burned, total_minted, action_count, _, eliminated_count = stats

        return ContractStats(
            holder_count=int(holder_count),
            total_supply=Web3.from_wei(total_supply, 'ether'),
            total_burned=Web3.from_wei(total_burned, 'ether'),
            total_minted=Web3.from_wei(total_minted, 'ether'),
            action_count=int(action_count),
            eliminated_count=int(eliminated_count),
            can_act_now=bool(can_act),
            next_eligible_time=int(next_time),
            cooldown_remaining=cooldown_remaining(int(next_time), now)
        )
