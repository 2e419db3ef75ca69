#!/usr/bin/env python3
"""Ledger session for the keeper.

This module wraps one JSON-RPC endpoint and one signing identity. It
exposes exactly the operations an attempt needs: read balance and fees,
simulate the action, broadcast it, and wait for its receipt. Raw web3
exceptions are translated into the keeper's error taxonomy here so the
executor never has to know about them.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, TypeVar

from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError
from web3.types import TxParams, TxReceipt, Wei

from .errors import (
    ConfirmationError,
    ConfirmationTimeoutError,
    NetworkError,
    SimulationError,
    SubmissionError,
)
from .models import Confirmation, Eligibility, FeeConditions
from .utils.contract_utility import ContractUtility

if TYPE_CHECKING:
    from .config import KeeperConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LedgerClient:
    """Session bound to one RPC endpoint and one signer."""

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        request_timeout: float = 30,
        confirmation_timeout: float = 120,
        poll_latency: float = 2
    ) -> None:
        """
        Initialize the LedgerClient.

        Args:
            rpc_url: JSON-RPC endpoint URL
            private_key: Hex private key the signer is derived from
            request_timeout: Upper bound in seconds for each RPC read
            confirmation_timeout: Upper bound in seconds for a receipt wait
            poll_latency: Seconds between receipt polls
        """
        self._private_key = private_key
        self.request_timeout = request_timeout
        self.confirmation_timeout = confirmation_timeout
        self.poll_latency = poll_latency
        self.contract_util: ContractUtility = ContractUtility(rpc_url, private_key)

    @classmethod
    def from_config(cls, config: "KeeperConfig") -> "LedgerClient":
        return cls(
            rpc_url=config.rpc_url,
            private_key=config.private_key,
            request_timeout=config.request_timeout,
            confirmation_timeout=config.confirmation_timeout,
            poll_latency=config.poll_latency
        )

    @property
    def w3(self):
        return self.contract_util.w3

    @property
    def address(self) -> str:
        """Checksummed address of the signer."""
        return self.contract_util.address

    @property
    def rpc_url(self) -> str:
        return self.contract_util.rpc_url

    def reconfigure(self, rpc_url: str) -> None:
        """Rebind the session to a new endpoint, keeping the same signer."""
        logger.info(f"Reconfiguring ledger client: {self.rpc_url} -> {rpc_url}")
        self.contract_util = ContractUtility(rpc_url, self._private_key)

    async def _bounded(self, awaitable: Awaitable[T], what: str) -> T:
        """Await a remote read with the request timeout, mapping failures to NetworkError."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            raise NetworkError(f"Timed out after {self.request_timeout}s while {what}") from None
        except Exception as e:
            raise NetworkError(f"Failed while {what}: {e}") from e

    async def is_connected(self) -> bool:
        try:
            return bool(await asyncio.wait_for(self.w3.is_connected(), timeout=self.request_timeout))
        except Exception as e:
            logger.debug(f"Connectivity check failed: {e}")
            return False

    async def chain_id(self) -> int:
        return await self._bounded(self.w3.eth.chain_id, "reading chain id")

    async def current_balance(self, address: str | None = None) -> Wei:
        """
        Read the balance of ``address`` (defaults to the signer).

        Raises:
            NetworkError: On transport failure
        """
        return await self._bounded(
            self.w3.eth.get_balance(address or self.address),
            "reading balance"
        )

    async def current_fee_conditions(self) -> FeeConditions:
        """
        Read base fee from the latest block and the node's priority fee suggestion.

        Raises:
            NetworkError: On transport failure
        """
        block = await self._bounded(self.w3.eth.get_block("latest"), "reading latest block")
        priority_fee = await self._bounded(self.w3.eth.max_priority_fee, "reading priority fee")
        return FeeConditions(
            base_fee=int(block.get("baseFeePerGas") or 0),
            suggested_priority_fee=int(priority_fee)
        )

    async def read_eligibility(self, target: str) -> Eligibility:
        """
        Ask the contract whether the action is currently allowed.

        Raises:
            NetworkError: On transport failure or if the view call fails
        """
        contract = self.contract_util.contract(target)
        can_act, next_time = await asyncio.gather(
            self._bounded(contract.functions.canDestabilizeNow().call(), "reading canDestabilizeNow"),
            self._bounded(contract.functions.getNextDestabilizationTime().call(), "reading next eligible time")
        )
        return Eligibility(can_act_now=bool(can_act), next_eligible_time=int(next_time))

    async def estimate_action_cost(self, target: str, action: str) -> int:
        """
        Simulate the action without committing it.

        Args:
            target: Contract address
            action: Name of the zero-argument contract function

        Returns:
            Estimated gas units

        Raises:
            SimulationError: If the node predicts a revert
            NetworkError: On any other failure
        """
        contract = self.contract_util.contract(target)
        call = getattr(contract.functions, action)()
        try:
            gas = await asyncio.wait_for(
                call.estimate_gas({"from": self.address}),
                timeout=self.request_timeout
            )
        except ContractLogicError as e:
            raise SimulationError(f"{action}() would revert: {e}") from e
        except asyncio.TimeoutError:
            raise NetworkError(f"Timed out after {self.request_timeout}s while estimating gas") from None
        except Exception as e:
            raise NetworkError(f"Gas estimation failed: {e}") from e
        return int(gas)

    async def submit_action(
        self,
        target: str,
        action: str,
        cost_ceiling: int,
        priority_fee: int,
        estimated_cost: int | None = None,
        base_fee: int | None = None
    ) -> str:
        """
        Sign and broadcast the action.

        The cost ceiling is checked against the estimate before anything is
        built or sent, so an over-ceiling action never reaches the network.

        Args:
            target: Contract address
            action: Name of the zero-argument contract function
            cost_ceiling: Gas limit for the transaction
            priority_fee: maxPriorityFeePerGas in wei
            estimated_cost: Prior gas estimate, if one was made
            base_fee: Base fee the attempt already read; fetched here if omitted

        Returns:
            Transaction hash as 0x-prefixed hex

        Raises:
            SubmissionError: If the ceiling is too low or the node rejects the transaction
            NetworkError: On transport failure
        """
        if estimated_cost is not None and estimated_cost > cost_ceiling:
            raise SubmissionError(
                f"Estimated cost {estimated_cost} exceeds cost ceiling {cost_ceiling}; not broadcasting"
            )

        if base_fee is None:
            base_fee = (await self.current_fee_conditions()).base_fee
        nonce = await self._bounded(
            self.w3.eth.get_transaction_count(self.address, "pending"),
            "reading nonce"
        )
        chain_id = await self.chain_id()

        tx_params: TxParams = {
            'from': self.address,
            'nonce': nonce,
            'chainId': chain_id,
            'gas': cost_ceiling,
            'maxPriorityFeePerGas': Wei(priority_fee),
            'maxFeePerGas': Wei(2 * base_fee + priority_fee),
            'value': Wei(0)
        }

        contract = self.contract_util.contract(target)
        try:
            tx: dict[str, Any] = await getattr(contract.functions, action)().build_transaction(tx_params)
            raw_tx: bytes = self.contract_util.sign_transaction(tx)
        except Exception as e:
            raise SubmissionError(f"Could not build transaction: {e}") from e

        logger.debug(
            f"Broadcasting {action}() nonce={nonce} gas={cost_ceiling} "
            f"maxPriorityFeePerGas={priority_fee} maxFeePerGas={tx_params['maxFeePerGas']}"
        )
        try:
            tx_hash = await asyncio.wait_for(
                self.w3.eth.send_raw_transaction(raw_tx),
                timeout=self.request_timeout
            )
        except (Web3RPCError, ValueError) as e:
            raise SubmissionError(f"Broadcast rejected: {e}") from e
        except asyncio.TimeoutError:
            raise NetworkError(f"Timed out after {self.request_timeout}s while broadcasting") from None
        except Exception as e:
            raise NetworkError(f"Broadcast failed: {e}") from e

        return Web3.to_hex(tx_hash)

    async def await_confirmation(self, submission_id: str) -> Confirmation:
        """
        Wait for the transaction to be included.

        Args:
            submission_id: Transaction hash returned by submit_action

        Returns:
            Block number and gas used of the successful transaction

        Raises:
            ConfirmationTimeoutError: If no receipt appears within the confirmation timeout
            ConfirmationError: If the transaction was included but reverted
            NetworkError: On transport failure
        """
        try:
            receipt: TxReceipt = await self.w3.eth.wait_for_transaction_receipt(
                submission_id,
                timeout=self.confirmation_timeout,
                poll_latency=self.poll_latency
            )
        except TimeExhausted:
            raise ConfirmationTimeoutError(
                f"Transaction {submission_id} not included after {self.confirmation_timeout}s"
            ) from None
        except Exception as e:
            raise NetworkError(f"Failed while waiting for receipt: {e}") from e

        # Use walrus operator for status check
        if (status := receipt.get('status', 0)) != 1:
            raise ConfirmationError(
                f"Transaction {submission_id} reverted in block {receipt.get('blockNumber')} (status={status})",
                submission_id=submission_id,
                included_at_position=receipt.get('blockNumber')
            )

        return Confirmation(
            included_at_position=int(receipt['blockNumber']),
            consumed_cost=int(receipt['gasUsed']),
            effective_gas_price=receipt.get('effectiveGasPrice')
        )
