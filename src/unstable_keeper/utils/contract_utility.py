import json
from functools import cache
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.contract import AsyncContract


@cache
def get_contract_abi(contract_name: str) -> list[dict[str, Any]]:
    """Fetches ABI of the given contract from the bundled abi folder.

    Args:
        contract_name: Name of the contract (without .json extension)

    Returns:
        List of ABI dictionaries for the contract

    Raises:
        FileNotFoundError: If the contract file doesn't exist
        json.JSONDecodeError: If the contract file is invalid JSON
    """
    contract_path: Path = (
        Path(__file__).parent.parent / "abi" / f"{contract_name}.json"
    ).resolve()

    with contract_path.open() as file:
        contract_data: dict[str, Any] = json.load(file)

    return contract_data["abi"]


class ContractUtility:
    """
    Utility for async contract access and ABI loading.

    Can be used in two modes:
    1. Signing mode: Initialize with RPC URL and secret; transactions are signed locally
    2. Read-only mode: Initialize with RPC URL only for view calls
    """

    def __init__(self, rpc_url: str, secret: str = "") -> None:
        """
        Initialize the ContractUtility.

        Args:
            rpc_url: RPC URL for the network (required)
            secret: Private key for signing transactions (optional - if not provided, read-only mode)
        """
        if not rpc_url:
            raise ValueError("RPC URL is required")

        self.rpc_url = rpc_url
        self.w3: AsyncWeb3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_url))

        self.account: LocalAccount | None = Account.from_key(secret) if secret else None
        if self.account:
            self.w3.eth.default_account = self.account.address

    @property
    def address(self) -> str | None:
        """Checksummed signer address, or None in read-only mode."""
        return self.account.address if self.account else None

    def contract(self, address: str, contract_name: str = "UnstableCoin") -> AsyncContract:
        """Bind a contract instance at ``address`` using the bundled ABI."""
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=get_contract_abi(contract_name)
        )

    def sign_transaction(self, tx: dict[str, Any]) -> bytes:
        """
        Sign a fully populated transaction with the local key.

        Returns:
            Raw signed transaction bytes ready for eth_sendRawTransaction

        Raises:
            ValueError: If running in read-only mode
        """
        if not self.account:
            raise ValueError("Private key is required for signing transactions")
        return self.account.sign_transaction(tx).raw_transaction
