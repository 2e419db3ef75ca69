#!/usr/bin/env python3
"""Tests for the read-only statistics session."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from web3 import Web3

from unstable_keeper.errors import NetworkError
from unstable_keeper.models import ContractStats
from unstable_keeper.stats import StatsReader, cooldown_remaining

from conftest import TEST_CONTRACT

TOKEN = 10**18


@pytest.fixture
def mock_functions():
    """Mocked contract view functions with realistic values."""
    functions = MagicMock()
    functions.holderCount.return_value.call = AsyncMock(return_value=1247)
    functions.totalSupply.return_value.call = AsyncMock(return_value=943_627 * TOKEN)
    functions.getStats.return_value.call = AsyncMock(
        return_value=(943_627 * TOKEN, 156_373 * TOKEN, 1_100_000 * TOKEN, 8, 120, 58)
    )
    functions.canDestabilizeNow.return_value.call = AsyncMock(return_value=False)
    functions.getNextDestabilizationTime.return_value.call = AsyncMock(return_value=1_700_003_600)
    return functions


@pytest.fixture
def reader(mock_functions):
    stats_reader = StatsReader("https://rpc.sepolia.org", TEST_CONTRACT.lower(), request_timeout=1)
    stats_reader.contract_util.w3 = MagicMock()
    stats_reader.contract_util.w3.eth.contract.return_value.functions = mock_functions
    return stats_reader


class TestCooldownRemaining:

    def test_future(self):
        assert cooldown_remaining(1_700_000_600, now=1_700_000_000) == 600

    def test_past_is_zero(self):
        assert cooldown_remaining(1_700_000_000, now=1_700_000_600) == 0

    def test_defaults_to_local_clock(self):
        assert cooldown_remaining(0) == 0


class TestStatsReader:
    """Test suite for StatsReader."""

    def test_address_checksummed(self, reader):
        assert reader.contract_address == TEST_CONTRACT

    @pytest.mark.asyncio
    async def test_fetch(self, reader):
        stats = await reader.fetch(now=1_700_000_000)

        assert stats.holder_count == 1247
        assert stats.total_supply == Decimal(943_627)
        assert stats.total_burned == Decimal(156_373)
        assert stats.total_minted == Decimal(1_100_000)
        assert stats.action_count == 8
        assert stats.eliminated_count == 58
        assert stats.can_act_now is False
        assert stats.next_eligible_time == 1_700_003_600
        assert stats.cooldown_remaining == 3600

    @pytest.mark.asyncio
    async def test_fetch_failure_raises_network_error(self, reader, mock_functions):
        """Test that failures surface instead of returning placeholder zeros."""
        mock_functions.getStats.return_value.call = AsyncMock(side_effect=ConnectionError("down"))

        with pytest.raises(NetworkError):
            await reader.fetch()

    def test_reconfigure(self, reader):
        other = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb7"
        reader.reconfigure(other.lower(), "https://other.rpc")

        assert reader.contract_address == Web3.to_checksum_address(other)
        assert reader.contract_util.rpc_url == "https://other.rpc"

    def test_to_dict(self):
        stats = ContractStats(1, Decimal("2.5"), Decimal(0), Decimal(3), 4, 5, True, 6, 0)
        assert stats.to_dict()["total_supply"] == "2.5"
