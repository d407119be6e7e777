"""
Fund Tests.

Tests for access control, proportion changes, serialization of
operations and persistence hooks of a single fund.
"""

import asyncio
import json
import uuid

import pytest

from index_fund.config import EngineConfig
from index_fund.core.exceptions import (
    InsufficientBalanceError,
    InsufficientLiquidityError,
    InvalidProportionsError,
    UnauthorizedError,
    ValidationError,
)
from index_fund.core.models import Asset
from index_fund.core.structured_logging import EventType, FundActivityLogger
from index_fund.fund import Fund, ProportionTable, TransactionKind, TransactionStatus
from tests.mocks import AVAX, BASKET, BTCB, ONE_AVAX, USDC, USDT, WETH


# =============================================================================
# Access control
# =============================================================================


class TestAccessControl:
    """Test creator and manager permissions."""

    @pytest.mark.asyncio
    async def test_stranger_cannot_set_proportions(self, fund):
        with pytest.raises(UnauthorizedError) as exc_info:
            await fund.set_proportions("mallory", BASKET, [40, 30, 20, 10])

        assert exc_info.value.caller == "mallory"
        assert fund.target_proportions(BTCB) == 25

    @pytest.mark.asyncio
    async def test_stranger_cannot_rebalance(self, fund):
        with pytest.raises(UnauthorizedError):
            await fund.rebalance("mallory")
        assert fund.get_transaction_history() == []

    @pytest.mark.asyncio
    async def test_manager_granted_and_revoked(self, fund):
        await fund.add_manager("alice", "bob")
        assert fund.is_manager("bob")
        assert fund.managers == ["bob"]

        await fund.set_proportions("bob", BASKET, [40, 30, 20, 10])
        assert fund.target_proportions(BTCB) == 40

        await fund.remove_manager("alice", "bob")
        with pytest.raises(UnauthorizedError):
            await fund.rebalance("bob")

    @pytest.mark.asyncio
    async def test_only_creator_grants(self, fund):
        await fund.add_manager("alice", "bob")
        with pytest.raises(UnauthorizedError):
            await fund.add_manager("bob", "carol")
        with pytest.raises(UnauthorizedError):
            await fund.remove_manager("bob", "bob")

    @pytest.mark.asyncio
    async def test_remove_unknown_manager(self, fund):
        with pytest.raises(ValidationError):
            await fund.remove_manager("alice", "nobody")

    def test_creator_is_manager(self, fund):
        assert fund.is_manager("alice")
        assert not fund.is_manager("bob")


# =============================================================================
# Proportions
# =============================================================================


class TestSetProportions:
    """Test target weight changes through the fund."""

    @pytest.mark.asyncio
    async def test_moves_no_assets(self, fund, router):
        await fund.buy("alice", 10 * ONE_AVAX)
        holdings = {asset: fund.get_token_balance(asset) for asset in BASKET}
        fills = len(router.fills)

        result = await fund.set_proportions("alice", BASKET, [40, 30, 20, 10])

        assert result is None
        assert {asset: fund.get_token_balance(asset) for asset in BASKET} == holdings
        assert len(router.fills) == fills
        assert [fund.target_proportions(a) for a in BASKET] == [40, 30, 20, 10]

    @pytest.mark.asyncio
    async def test_invalid_sum_keeps_table(self, fund):
        with pytest.raises(InvalidProportionsError):
            await fund.set_proportions("alice", BASKET, [40, 30, 20, 5])
        assert [fund.target_proportions(a) for a in BASKET] == [25, 25, 25, 25]

    @pytest.mark.asyncio
    async def test_unknown_asset_rejected(self, fund):
        newcomer = Asset("0x5947bb275c521040051d82396192181b413227a3", "LINK.e", 18)
        with pytest.raises(InvalidProportionsError):
            await fund.set_proportions("alice", [BTCB, newcomer], [50, 50])
        assert fund.target_proportions(newcomer) == 0

    @pytest.mark.asyncio
    async def test_rebalance_on_change(self, oracle, router):
        fund = Fund(
            fund_id="auto",
            name="Auto Rebalanced",
            ticker="AUTO",
            creator="alice",
            base_asset=AVAX,
            proportions=ProportionTable.equal(BASKET),
            oracle=oracle,
            router=router,
            config=EngineConfig(rebalance_on_set_proportions=True),
        )
        await fund.buy("alice", 100 * ONE_AVAX)

        tx = await fund.set_proportions("alice", BASKET, [40, 30, 20, 10])

        assert tx.kind == TransactionKind.REBALANCE
        assert tx.status == TransactionStatus.COMMITTED
        assert abs(tx.weights_after[BTCB.address] - 40) < 1


# =============================================================================
# Operations
# =============================================================================


class TestOperations:
    """Test buy, sell and transfer through the fund."""

    @pytest.mark.asyncio
    async def test_buy_then_sell(self, fund):
        tx = await fund.buy("alice", 10 * ONE_AVAX)
        assert fund.balance_of("alice") == tx.shares == fund.total_supply

        nav = await fund.get_nav()
        assert nav > 0

        redeemed = await fund.sell("alice", tx.shares)
        assert redeemed.proceeds > 0
        assert fund.total_supply == 0
        assert all(fund.get_token_balance(asset) == 0 for asset in BASKET)
        assert await fund.get_nav() == 0

    @pytest.mark.asyncio
    async def test_concurrent_buys_serialized(self, fund):
        results = await asyncio.gather(
            fund.buy("alice", 10 * ONE_AVAX),
            fund.buy("bob", 5 * ONE_AVAX),
            fund.buy("carol", 1 * ONE_AVAX),
        )

        assert all(tx.status == TransactionStatus.COMMITTED for tx in results)
        assert fund.total_supply == sum(tx.shares for tx in results)
        assert fund.balance_of("bob") == results[1].shares

    @pytest.mark.asyncio
    async def test_transfer(self, fund):
        tx = await fund.buy("alice", ONE_AVAX)

        await fund.transfer("alice", "bob", tx.shares // 4)

        assert fund.balance_of("bob") == tx.shares // 4
        assert fund.total_supply == tx.shares

        with pytest.raises(InsufficientBalanceError):
            await fund.transfer("bob", "carol", tx.shares)

    @pytest.mark.asyncio
    async def test_transfer_logged(self, oracle, router, tmp_path):
        activity = FundActivityLogger(f"test-{uuid.uuid4()}", log_dir=tmp_path)
        fund = Fund(
            fund_id="fund-log",
            name="Logged Fund",
            ticker="LOG",
            creator="alice",
            base_asset=AVAX,
            proportions=ProportionTable.equal(BASKET),
            oracle=oracle,
            router=router,
            activity=activity,
        )
        tx = await fund.buy("alice", ONE_AVAX)

        await fund.transfer("alice", "bob", tx.shares)
        for handler in activity._logger.handlers:
            handler.flush()

        line = (tmp_path / "activity.jsonl").read_text(encoding="utf-8").splitlines()[-1]
        record = json.loads(line)
        assert record["event_type"] == EventType.SHARES_TRANSFERRED.value
        assert record["context"]["fund_id"] == "fund-log"
        assert record["data"]["recipient"] == "bob"
        assert record["data"]["shares"] == tx.shares

    @pytest.mark.asyncio
    async def test_history_includes_failures(self, fund, router):
        await fund.buy("alice", ONE_AVAX)
        router.disable_route(AVAX, USDT)
        with pytest.raises(InsufficientLiquidityError):
            await fund.buy("bob", ONE_AVAX)

        history = fund.get_transaction_history()

        assert [tx.status for tx in history] == [
            TransactionStatus.ROLLED_BACK,
            TransactionStatus.COMMITTED,
        ]

    @pytest.mark.asyncio
    async def test_usdc_quarter_of_deposit(self, fund):
        await fund.buy("alice", 4 * ONE_AVAX)
        # 1 AVAX -> $20 of USDC less 0.3%
        assert fund.get_token_balance(USDC) == 19_940_000
        assert fund.get_token_balance(WETH) > 0


# =============================================================================
# Persistence
# =============================================================================


class TestPersistence:
    """Test state snapshots and repository hooks."""

    @pytest.mark.asyncio
    async def test_state_roundtrip(self, fund, oracle, router):
        await fund.add_manager("alice", "bob")
        await fund.buy("alice", 10 * ONE_AVAX)
        await fund.set_proportions("alice", [BTCB, WETH], [70, 30])

        restored = Fund.from_state(fund.to_state(), oracle, router)

        assert restored.fund_name == fund.fund_name
        assert restored.managers == ["bob"]
        assert restored.total_supply == fund.total_supply
        assert restored.target_proportions(BTCB) == 70
        assert restored.target_proportions(USDC) == 0
        assert restored.proportions.is_allowed(USDT)
        assert restored.get_token_balance(WETH) == fund.get_token_balance(WETH)
        assert await restored.get_nav() == await fund.get_nav()

    @pytest.mark.asyncio
    async def test_saved_after_each_operation(self, fund, repository):
        fund.attach_repository(repository)
        assert repository.load_fund(fund.fund_id).total_supply == 0

        tx = await fund.buy("alice", ONE_AVAX)

        state = repository.load_fund(fund.fund_id)
        assert state.balances == {"alice": tx.shares}
        assert state.holdings[USDC.address] == fund.get_token_balance(USDC)
        records = repository.get_transaction_history(fund.fund_id)
        assert records[0].transaction_id == tx.transaction_id

    @pytest.mark.asyncio
    async def test_failed_operation_recorded(self, fund, repository, router):
        fund.attach_repository(repository)
        router.disable_route(AVAX, BTCB)

        with pytest.raises(InsufficientLiquidityError):
            await fund.buy("alice", ONE_AVAX)

        records = repository.get_transaction_history(fund.fund_id)
        assert records[0].status == TransactionStatus.ROLLED_BACK
        assert repository.load_fund(fund.fund_id).total_supply == 0
