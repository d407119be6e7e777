"""
Proportion Table Tests.

Tests for target weight validation and deposit splitting.
"""

import pytest

from index_fund.core.exceptions import InvalidProportionsError
from index_fund.core.models import Asset
from index_fund.fund import ProportionTable
from tests.mocks import BASKET, BTCB, USDC, USDT, WETH


class TestConstruction:
    """Test table construction."""

    def test_equal_weights(self):
        table = ProportionTable.equal(BASKET)
        assert [table.weight_of(a) for a in BASKET] == [25, 25, 25, 25]

    def test_equal_remainder_to_first(self):
        table = ProportionTable.equal([BTCB, WETH, USDC])
        assert [table.weight_of(a) for a in (BTCB, WETH, USDC)] == [34, 33, 33]

    def test_empty_universe(self):
        with pytest.raises(InvalidProportionsError):
            ProportionTable([])

    def test_duplicate_universe(self):
        with pytest.raises(InvalidProportionsError):
            ProportionTable([BTCB, BTCB])


class TestSetProportions:
    """Test set_proportions validation."""

    def test_replace_weights(self):
        table = ProportionTable.equal(BASKET)
        table.set_proportions(BASKET, [40, 30, 20, 10])

        assert table.weight_of(BTCB) == 40
        assert table.weight_of(USDT) == 10
        assert table.to_dict() == {
            BTCB.address: 40,
            WETH.address: 30,
            USDC.address: 20,
            USDT.address: 10,
        }

    def test_subset_drops_unlisted_to_zero(self):
        table = ProportionTable.equal(BASKET)
        table.set_proportions([BTCB, WETH], [60, 40])

        assert table.weight_of(USDC) == 0
        assert USDC not in table
        assert table.is_allowed(USDC)
        assert table.allowed_assets == tuple(BASKET)

    @pytest.mark.parametrize(
        "assets,weights",
        [
            (BASKET, [30, 30, 20, 10]),  # sums to 90
            (BASKET, [40, 30, 20]),  # length mismatch
            ([], []),
            ([BTCB, BTCB], [50, 50]),
            ([BTCB, WETH], [120, -20]),
            ([BTCB, WETH], [50.0, 50]),
            ([BTCB, WETH], [True, 99]),
            ([BTCB, Asset("0x1234", "NEW")], [50, 50]),  # not introduced
        ],
    )
    def test_invalid_leaves_table_unchanged(self, assets, weights):
        table = ProportionTable.equal(BASKET)
        before = table.to_dict()

        with pytest.raises(InvalidProportionsError):
            table.set_proportions(assets, weights)

        assert table.to_dict() == before

    def test_zero_weight_allowed(self):
        table = ProportionTable.equal(BASKET)
        table.set_proportions(BASKET, [100, 0, 0, 0])
        assert table.weight_of(WETH) == 0
        assert WETH in table


class TestSplit:
    """Test deposit splitting."""

    def test_split_even(self):
        table = ProportionTable.equal(BASKET)
        assert table.split(100) == {BTCB: 25, WETH: 25, USDC: 25, USDT: 25}

    def test_split_remainder_to_first(self):
        table = ProportionTable.equal([BTCB, WETH, USDC])
        portions = table.split(100)
        assert portions == {BTCB: 34, WETH: 33, USDC: 33}
        assert sum(portions.values()) == 100

    def test_split_skips_zero_weights(self):
        table = ProportionTable.equal(BASKET)
        table.set_proportions(BASKET, [0, 50, 0, 50])
        portions = table.split(11)
        assert portions == {WETH: 6, USDT: 5}

    def test_split_conserves_amount(self):
        table = ProportionTable.equal(BASKET)
        table.set_proportions(BASKET, [37, 29, 19, 15])
        for amount in (1, 7, 999, 10**18 + 3):
            assert sum(table.split(amount).values()) == amount
