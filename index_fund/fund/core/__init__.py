"""Fund accounting core: proportions, ledger, holdings, valuation and the engine."""

from .engine import FundBook, FundEngine
from .executor import SwapExecutor
from .holdings import Holdings
from .ledger import FundLedger
from .proportions import ProportionEntry, ProportionTable
from .valuation import Valuation, Valuator, to_decimal

__all__ = [
    "FundBook",
    "FundEngine",
    "SwapExecutor",
    "Holdings",
    "FundLedger",
    "ProportionEntry",
    "ProportionTable",
    "Valuation",
    "Valuator",
    "to_decimal",
]
