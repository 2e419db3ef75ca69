#!/usr/bin/env python3
"""Configuration management for the UnstableCoin keeper.

This module provides a type-safe, immutable configuration dataclass with
validation. Configuration is loaded from environment variables (or any
mapping with the same keys) with sensible defaults for everything that is
not required.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import ClassVar
from urllib.parse import urlparse

from web3 import Web3

from .errors import ConfigurationError
from .schedule import schedule_from_expression

# Get logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class KeeperConfig:
    """Main configuration for the keeper.

    Attributes:
        private_key: Hex private key of the keeper wallet
        rpc_url: HTTP(S) JSON-RPC endpoint
        contract_address: Checksummed address of the UnstableCoin contract
        cron_schedule: Cron expression (or plain seconds) for action attempts
        gas_limit: Cost ceiling for a single action transaction (gas units)
        max_priority_fee_per_gas: Priority fee floor in wei
        heartbeat_interval: Seconds between liveness heartbeats
        confirmation_timeout: Seconds to wait for a receipt before giving up
        request_timeout: Seconds allowed for any single RPC read
        poll_latency: Seconds between receipt polls while confirming
    """

    private_key: str
    rpc_url: str
    contract_address: str
    cron_schedule: str = "*/10 * * * *"
    gas_limit: int = 500_000
    max_priority_fee_per_gas: int = 2_000_000_000
    heartbeat_interval: int = 60
    confirmation_timeout: int = 120
    request_timeout: int = 30
    poll_latency: int = 2

    # Field name -> environment variable, in reporting order
    REQUIRED_ENV: ClassVar[dict[str, str]] = {
        "private_key": "KEEPER_PRIVATE_KEY",
        "rpc_url": "RPC_URL",
        "contract_address": "CONTRACT_ADDRESS",
    }
    OPTIONAL_ENV: ClassVar[dict[str, str]] = {
        "cron_schedule": "CRON_SCHEDULE",
        "gas_limit": "GAS_LIMIT",
        "max_priority_fee_per_gas": "MAX_PRIORITY_FEE",
        "heartbeat_interval": "HEARTBEAT_INTERVAL",
        "confirmation_timeout": "CONFIRMATION_TIMEOUT",
        "request_timeout": "REQUEST_TIMEOUT",
        "poll_latency": "POLL_LATENCY",
    }

    def __post_init__(self) -> None:
        """Validate keeper configuration."""
        # Presence first, so every missing field is reported at once
        missing = [
            env for name, env in self.REQUIRED_ENV.items()
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing
            )

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https'):
            raise ConfigurationError(
                f"Invalid RPC URL scheme: {parsed.scheme}. Expected http or https"
            )

        if not Web3.is_address(self.contract_address):
            raise ConfigurationError(
                f"Invalid contract address: {self.contract_address}"
            )

        # Convert to checksum address
        checksummed = Web3.to_checksum_address(self.contract_address)
        if checksummed != self.contract_address:
            # Use object.__setattr__ since dataclass is frozen
            object.__setattr__(self, 'contract_address', checksummed)

        # Basic private key validation (64 hex chars, optionally with 0x prefix)
        key = self.private_key.removeprefix('0x')
        if len(key) != 64:
            raise ConfigurationError(
                f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
            )
        try:
            int(key, 16)
        except ValueError:
            raise ConfigurationError(
                "Invalid private key format. Must be hexadecimal"
            ) from None

        try:
            schedule_from_expression(self.cron_schedule)
        except ValueError as e:
            raise ConfigurationError(f"Invalid CRON_SCHEDULE: {e}") from None

        if self.gas_limit <= 0:
            raise ConfigurationError(f"Gas limit must be positive, got {self.gas_limit}")
        if self.max_priority_fee_per_gas < 0:
            raise ConfigurationError(
                f"Priority fee must be non-negative, got {self.max_priority_fee_per_gas}"
            )
        if self.heartbeat_interval <= 0:
            raise ConfigurationError(
                f"Heartbeat interval must be positive, got {self.heartbeat_interval}"
            )
        if self.confirmation_timeout <= 0:
            raise ConfigurationError(
                f"Confirmation timeout must be positive, got {self.confirmation_timeout}"
            )
        if self.request_timeout <= 0 or self.request_timeout > 120:
            raise ConfigurationError(
                f"Request timeout must be between 1 and 120 seconds, got {self.request_timeout}"
            )
        if self.poll_latency <= 0:
            raise ConfigurationError(f"Poll latency must be positive, got {self.poll_latency}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "KeeperConfig":
        """Load configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            KeeperConfig instance with loaded values

        Raises:
            ConfigurationError: If required variables are missing or any value is invalid
        """
        env = os.environ if environ is None else environ

        values: dict[str, str | int] = {
            name: env.get(var, "").strip() for name, var in cls.REQUIRED_ENV.items()
        }

        # Missing required variables outrank malformed optional ones
        missing = [cls.REQUIRED_ENV[name] for name, value in values.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing
            )

        for name, var in cls.OPTIONAL_ENV.items():
            raw = env.get(var, "").strip()
            if not raw:
                continue
            if name == "cron_schedule":
                values[name] = raw
                continue
            try:
                values[name] = int(raw)
            except ValueError:
                raise ConfigurationError(
                    f"{var} must be an integer, got {raw!r}"
                ) from None

        return cls(**values)

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("UnstableCoin Keeper Configuration")
        logger.info("=" * 60)

        logger.info("Chain:")
        logger.info(f"  RPC URL: {self.rpc_url}")
        logger.info(f"  Contract: {self.contract_address}")
        logger.info("  Keeper Key: [CONFIGURED]")

        logger.info("Schedule:")
        logger.info(f"  Action Schedule: {self.cron_schedule}")
        logger.info(f"  Heartbeat Interval: {self.heartbeat_interval} seconds")

        logger.info("Transaction Settings:")
        logger.info(f"  Gas Limit: {self.gas_limit}")
        logger.info(f"  Priority Fee Floor: {Web3.from_wei(self.max_priority_fee_per_gas, 'gwei')} gwei")
        logger.info(f"  Confirmation Timeout: {self.confirmation_timeout} seconds")
        logger.info(f"  Request Timeout: {self.request_timeout} seconds")

        logger.info("=" * 60)
