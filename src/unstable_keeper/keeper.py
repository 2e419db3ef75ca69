import dataclasses
import logging

from .action_executor import ACTION_NAME, ActionExecutor
from .config import KeeperConfig
from .errors import KeeperError, SimulationError
from .ledger_client import LedgerClient
from .models import AttemptOutcome, ContractStats
from .reporter import OutcomeReporter
from .schedule import Schedule, schedule_from_expression
from .scheduler import KeeperScheduler
from .stats import StatsReader

# Get logger for this module
logger = logging.getLogger(__name__)


class Keeper:
    """
    Keeper that periodically attempts to destabilize the UnstableCoin
    contract and reports every outcome.
    """

    def __init__(
        self,
        config: KeeperConfig,
        client: LedgerClient | None = None,
        reporter: OutcomeReporter | None = None,
        schedule: Schedule | None = None
    ) -> None:
        """
        Initialize the Keeper with configuration.

        :param config: Keeper configuration object
        :param client: Ledger session (built from config if not given)
        :param reporter: Outcome reporter (a default one if not given)
        :param schedule: Action schedule (parsed from config.cron_schedule if not given)
        """
        self.config = config
        self.reporter = reporter or OutcomeReporter()
        self.client = client or LedgerClient.from_config(config)
        self.executor = ActionExecutor(config, self.client, self.reporter)
        self.scheduler = KeeperScheduler(
            executor=self.executor,
            reporter=self.reporter,
            schedule=schedule or schedule_from_expression(config.cron_schedule),
            heartbeat_interval=config.heartbeat_interval
        )
        self._stats_reader: StatsReader | None = None
        logger.debug(f"Keeper initialized for contract {config.contract_address}")

    async def _chain_id_or_none(self) -> int | None:
        try:
            return await self.client.chain_id()
        except KeeperError as e:
            logger.warning(f"Could not read chain id: {e}")
            return None

    async def run(self) -> None:
        """
        Main entry point for the Keeper.
        Reports startup, runs the scheduler until stopped, reports shutdown.
        """
        if not await self.client.is_connected():
            # Not fatal: each tick reports its own NetworkError until the endpoint is back
            logger.warning(f"RPC endpoint {self.client.rpc_url} is not reachable at startup")

        self.reporter.process_started(self.config, self.client.address, await self._chain_id_or_none())
        logger.info("✅ Keeper service started successfully! Press Ctrl+C to stop...")
        try:
            await self.scheduler.run()
        finally:
            self.reporter.process_stopped()

    async def run_once(self) -> AttemptOutcome:
        """Perform exactly one attempt outside the scheduler."""
        logger.info(f"Single attempt against {self.config.contract_address} from {self.client.address}")
        return await self.executor.attempt()

    async def check(self) -> bool:
        """
        Preflight check of endpoint, wallet and action simulation.

        A failed simulation is not a failed check: the cooldown is usually active.

        :return: True if the endpoint is reachable and the wallet balance can be read
        """
        if not await self.client.is_connected():
            self.reporter.preflight(connected=False)
            return False

        try:
            chain_id = await self.client.chain_id()
            balance = await self.client.current_balance()
        except KeeperError as e:
            logger.error(f"Preflight failed: {e}")
            return False

        estimated_cost: int | None = None
        estimate_error: str | None = None
        try:
            estimated_cost = await self.client.estimate_action_cost(self.config.contract_address, ACTION_NAME)
        except SimulationError as e:
            estimate_error = str(e)
        except KeeperError as e:
            logger.error(f"Preflight failed: {e}")
            return False

        self.reporter.preflight(
            connected=True,
            chain_id=chain_id,
            address=self.client.address,
            balance=balance,
            estimated_cost=estimated_cost,
            estimate_error=estimate_error
        )
        return True

    async def stats(self) -> ContractStats:
        """Fetch and report a snapshot of the contract statistics."""
        if self._stats_reader is None:
            self._stats_reader = StatsReader(
                self.config.rpc_url,
                self.config.contract_address,
                request_timeout=self.config.request_timeout
            )
        snapshot = await self._stats_reader.fetch()
        self.reporter.stats(snapshot)
        return snapshot

    def reconfigure(self, rpc_url: str | None = None, contract_address: str | None = None) -> None:
        """
        Point the keeper at a new endpoint and/or contract.

        Not used by the run loop; call it only while no attempt is in flight.
        """
        changes = {
            key: value for key, value in
            (("rpc_url", rpc_url), ("contract_address", contract_address))
            if value
        }
        if not changes:
            return
        self.config = dataclasses.replace(self.config, **changes)
        self.executor.config = self.config
        if rpc_url:
            self.client.reconfigure(rpc_url)
        if self._stats_reader is not None:
            self._stats_reader.reconfigure(self.config.contract_address, self.config.rpc_url)
        logger.info(f"Keeper reconfigured: rpc={self.config.rpc_url} contract={self.config.contract_address}")

    def stop(self) -> None:
        """Request graceful shutdown."""
        logger.info("🛑 Shutting down keeper service...")
        self.scheduler.stop()
