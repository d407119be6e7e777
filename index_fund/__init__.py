"""
Index Fund.

Multi-asset index funds: share issuance and redemption, target-weight
management and oracle-priced rebalancing through a swap router.
"""

from .config import AppConfig, EngineConfig, FactoryConfig, StorageConfig, load_config
from .core import Asset, IndexFundError, PriceQuote
from .factory import FeeToken, FundFactory
from .fund import Fund, FundRepository, FundTransaction, ProportionTable
from .oracle import FeedRegistryOracle, PriceOracle, StaticPriceOracle
from .router import SimulatedSwapRouter, SwapRouter

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "EngineConfig",
    "FactoryConfig",
    "StorageConfig",
    "load_config",
    "Asset",
    "PriceQuote",
    "IndexFundError",
    "FeeToken",
    "FundFactory",
    "Fund",
    "FundRepository",
    "FundTransaction",
    "ProportionTable",
    "FeedRegistryOracle",
    "PriceOracle",
    "StaticPriceOracle",
    "SimulatedSwapRouter",
    "SwapRouter",
]
