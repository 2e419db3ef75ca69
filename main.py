#!/usr/bin/env python3
"""Entry point for the UnstableCoin keeper service.

This module provides the main entry point for the keeper that runs
unattended, attempting destabilization on a schedule and logging every
heartbeat and outcome.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys

from dotenv import load_dotenv

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from unstable_keeper.config import KeeperConfig
from unstable_keeper.errors import ConfigurationError, KeeperError
from unstable_keeper.keeper import Keeper


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="UnstableCoin Keeper Service - periodically triggers destabilize()",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables (also read from a .env file):
  KEEPER_PRIVATE_KEY    - Private key of the keeper wallet (required)
  RPC_URL               - JSON-RPC endpoint (required)
  CONTRACT_ADDRESS      - UnstableCoin contract address (required)
  CRON_SCHEDULE         - Action schedule, cron or seconds (default: */10 * * * *)
  GAS_LIMIT             - Gas limit per attempt (default: 500000)
  MAX_PRIORITY_FEE      - Priority fee floor in wei (default: 2000000000)
  HEARTBEAT_INTERVAL    - Seconds between heartbeats (default: 60)
  CONFIRMATION_TIMEOUT  - Seconds to wait for a receipt (default: 120)
  LOG_LEVEL             - Logging level (can be overridden with --log-level)
        """
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Perform a single attempt and exit"
    )
    mode.add_argument(
        "--check",
        action="store_true",
        default=False,
        help="Check connectivity, wallet balance and gas estimation, then exit"
    )
    mode.add_argument(
        "--stats",
        action="store_true",
        default=False,
        help="Print the contract statistics and exit"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    return parser.parse_args(argv)


def install_signal_handlers(keeper: Keeper) -> None:
    """Stop the keeper on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, keeper.stop)
        except NotImplementedError:
            # Windows: KeyboardInterrupt still reaches asyncio.run
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")


async def main(argv: list[str] | None = None) -> int:
    """Main entry point for the keeper service.

    Loads a .env file if present, parses startup arguments, loads
    configuration from environment, and runs the requested mode.

    Returns:
        Process exit code
    """
    # Load variables from a .env file; values already in the environment win
    load_dotenv()

    args: argparse.Namespace = parse_args(argv)
    setup_logging(args.log_level)

    logger.info("🚀 Starting UnstableCoin Keeper Service...")

    try:
        config: KeeperConfig = KeeperConfig.from_env()
    except ConfigurationError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - KEEPER_PRIVATE_KEY: Private key of the keeper wallet")
        logger.error("  - RPC_URL: JSON-RPC endpoint")
        logger.error("  - CONTRACT_ADDRESS: UnstableCoin contract address")
        return 1

    keeper: Keeper = Keeper(config)

    if args.check:
        return 0 if await keeper.check() else 1

    if args.stats:
        try:
            await keeper.stats()
        except KeeperError as e:
            logger.error(f"Failed to fetch stats: {e}")
            return 1
        return 0

    if args.once:
        outcome = await keeper.run_once()
        return 0 if outcome.success or (outcome.reason and outcome.reason.is_expected) else 1

    install_signal_handlers(keeper)
    await keeper.run()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        sys.exit(0)
