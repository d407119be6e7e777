"""
Pytest configuration and fixtures for index fund tests.
"""

import os
import tempfile

# Keep log files out of the source tree
os.environ.setdefault("INDEX_FUND_LOG_DIR", tempfile.mkdtemp(prefix="index_fund_logs_"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from index_fund.config import EngineConfig, FactoryConfig
from index_fund.factory import FeeToken, FundFactory
from index_fund.fund import (
    Fund,
    FundBook,
    FundEngine,
    FundLedger,
    FundRepository,
    Holdings,
    ProportionTable,
)
from index_fund.router import SimulatedSwapRouter
from tests.mocks import AVAX, BASKET, FailingSwapRouter, build_oracle


# =============================================================================
# Market Fixtures
# =============================================================================


@pytest.fixture
def oracle():
    """Static oracle: AVAX $20, BTC.b $60k, WETH.e $3k, USDC/USDT $1."""
    return build_oracle()


@pytest.fixture
def router(oracle):
    """Simulated venue with a 0.3% fee."""
    return SimulatedSwapRouter(oracle, fee_bps=30)


@pytest.fixture
def exact_router(oracle):
    """Simulated venue without fees."""
    return SimulatedSwapRouter(oracle, fee_bps=0)


@pytest.fixture
def failing_router(router):
    """Fee-charging venue wrapped for failure injection."""
    return FailingSwapRouter(router)


# =============================================================================
# Fund Fixtures
# =============================================================================


@pytest.fixture
def engine_config():
    return EngineConfig()


@pytest.fixture
def book():
    """Empty book with equal weights over the four-asset basket."""
    return FundBook(
        fund_id="fund-test",
        base_asset=AVAX,
        proportions=ProportionTable.equal(BASKET),
        holdings=Holdings(),
        ledger=FundLedger(),
    )


@pytest.fixture
def engine(oracle, router, engine_config):
    return FundEngine(oracle, router, engine_config)


@pytest.fixture
def fund(oracle, router, engine_config):
    """Fund created by alice over the four-asset basket."""
    return Fund(
        fund_id="fund-test",
        name="Test Fund Multi-Asset",
        ticker="TFMA",
        creator="alice",
        base_asset=AVAX,
        proportions=ProportionTable.equal(BASKET),
        oracle=oracle,
        router=router,
        config=engine_config,
    )


@pytest.fixture
def repository(tmp_path):
    repo = FundRepository(tmp_path / "index_fund.db")
    repo.initialize()
    return repo


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def fee_token():
    return FeeToken("AGI", owner="deployer")


@pytest.fixture
def factory(fee_token, oracle, router):
    return FundFactory(
        fee_token,
        oracle,
        router,
        config=FactoryConfig(owner="deployer", treasury="treasury", creation_fee=100 * 10**18),
    )
