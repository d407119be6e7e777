"""
Fund Repository Tests.

Tests for SQLite persistence of fund state and transactions.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from index_fund.fund import (
    FundRepository,
    FundState,
    FundTransaction,
    SwapLeg,
    TransactionKind,
    TransactionStatus,
)
from tests.mocks import AVAX, BTCB, USDC, WETH

T0 = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_state(fund_id="fund-1", creator="alice", created_at=T0) -> FundState:
    return FundState(
        fund_id=fund_id,
        name="Blue Chips",
        ticker="BLUE",
        creator=creator,
        base_asset=AVAX,
        assets=[BTCB, WETH, USDC],
        proportions={BTCB.address: 50, WETH.address: 50},
        holdings={BTCB.address: 83_083, USDC.address: 10**30},
        balances={"alice": 10**22, "bob": 5},
        managers=["bob"],
        created_at=created_at,
    )


def make_tx(kind=TransactionKind.BUY, status=TransactionStatus.COMMITTED, minutes=0):
    tx = FundTransaction(
        fund_id="fund-1",
        kind=kind,
        holder="alice",
        amount=10**18,
        created_at=T0 + timedelta(minutes=minutes),
    )
    tx.status = status
    return tx


class TestFundState:
    """Test fund state persistence."""

    def test_save_and_load(self, repository):
        state = make_state()
        repository.save_fund(state)

        loaded = repository.load_fund("fund-1")

        assert loaded.name == "Blue Chips"
        assert loaded.base_asset == AVAX
        assert [a.symbol for a in loaded.assets] == ["BTC.b", "WETH.e", "USDC"]
        assert loaded.assets[0].decimals == 8
        assert loaded.proportions == state.proportions
        assert loaded.holdings == state.holdings
        assert loaded.balances == state.balances
        assert loaded.total_supply == 10**22 + 5
        assert loaded.managers == ["bob"]
        assert loaded.created_at == T0

    def test_save_replaces(self, repository):
        repository.save_fund(make_state())
        state = make_state()
        state.balances = {"carol": 1}
        state.holdings = {}

        repository.save_fund(state)
        loaded = repository.load_fund("fund-1")

        assert loaded.balances == {"carol": 1}
        assert loaded.holdings == {}

    def test_missing(self, repository):
        assert repository.load_fund("nope") is None

    def test_list_by_creator(self, repository):
        repository.save_fund(make_state("f-1", "alice", T0))
        repository.save_fund(make_state("f-2", "bob", T0 + timedelta(days=1)))
        repository.save_fund(make_state("f-3", "alice", T0 + timedelta(days=2)))

        assert [s.fund_id for s in repository.list_funds()] == ["f-1", "f-2", "f-3"]
        assert [s.fund_id for s in repository.list_funds(creator="alice")] == ["f-1", "f-3"]

    def test_delete(self, repository):
        repository.save_fund(make_state())
        repository.save_transaction(make_tx())

        assert repository.delete_fund("fund-1") is True
        assert repository.load_fund("fund-1") is None
        assert repository.get_transaction_history("fund-1") == []
        assert repository.delete_fund("fund-1") is False

    def test_creates_parent_directory(self, tmp_path):
        repo = FundRepository(tmp_path / "nested" / "dir" / "funds.db")
        repo.save_fund(make_state())
        assert repo.db_path.exists()


class TestTransactions:
    """Test transaction persistence."""

    def test_roundtrip(self, repository):
        tx = make_tx()
        tx.shares = 9_970_000_000_000_000_000
        tx.deposit_value = Decimal("199.40000000")
        tx.add_leg(SwapLeg(AVAX, BTCB, 10**18, min_amount_out=80_833, amount_out=83_083))
        tx.weights_after = {BTCB.address: Decimal("100.0000")}

        repository.save_transaction(tx)
        loaded = repository.get_transaction_history("fund-1")[0]

        assert loaded.transaction_id == tx.transaction_id
        assert loaded.kind == TransactionKind.BUY
        assert loaded.status == TransactionStatus.COMMITTED
        assert loaded.shares == tx.shares
        assert loaded.deposit_value == Decimal("199.40000000")
        assert loaded.legs[0].asset_out == BTCB
        assert loaded.legs[0].amount_out == 83_083
        assert loaded.weights_after == {BTCB.address: Decimal("100.0000")}

    def test_update_in_place(self, repository):
        tx = make_tx(status=TransactionStatus.EXECUTING)
        repository.save_transaction(tx)
        tx.mark_committed()
        repository.save_transaction(tx)

        records = repository.get_transaction_history("fund-1")
        assert len(records) == 1
        assert records[0].status == TransactionStatus.COMMITTED

    def test_history_order_filter_limit(self, repository):
        for minutes, kind in enumerate(
            [TransactionKind.BUY, TransactionKind.SELL, TransactionKind.BUY, TransactionKind.REBALANCE]
        ):
            repository.save_transaction(make_tx(kind=kind, minutes=minutes))

        history = repository.get_transaction_history("fund-1")
        assert [tx.kind for tx in history] == [
            TransactionKind.REBALANCE,
            TransactionKind.BUY,
            TransactionKind.SELL,
            TransactionKind.BUY,
        ]
        assert len(repository.get_transaction_history("fund-1", kind=TransactionKind.BUY)) == 2
        assert len(repository.get_transaction_history("fund-1", limit=3)) == 3

    def test_statistics(self, repository):
        repository.save_transaction(make_tx(minutes=0))
        repository.save_transaction(make_tx(minutes=1))
        repository.save_transaction(make_tx(status=TransactionStatus.ROLLED_BACK, minutes=2))
        repository.save_transaction(
            make_tx(kind=TransactionKind.REBALANCE, status=TransactionStatus.PARTIAL, minutes=3)
        )

        stats = repository.get_statistics("fund-1")

        assert stats["total"] == 4
        assert stats["by_kind"]["buy"] == {"committed": 2, "rolled_back": 1}
        assert stats["by_kind"]["rebalance"] == {"partial": 1}
