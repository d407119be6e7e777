"""
Fund module.

Provides the Fund aggregate, its accounting core, records and storage.
"""

from .core import (
    FundBook,
    FundEngine,
    FundLedger,
    Holdings,
    ProportionEntry,
    ProportionTable,
    Valuation,
    Valuator,
)
from .fund import Fund
from .models import (
    FundState,
    FundTransaction,
    SwapLeg,
    TransactionKind,
    TransactionStatus,
)
from .storage import FundRepository

__all__ = [
    "Fund",
    # Core
    "FundBook",
    "FundEngine",
    "FundLedger",
    "Holdings",
    "ProportionEntry",
    "ProportionTable",
    "Valuation",
    "Valuator",
    # Records
    "FundState",
    "FundTransaction",
    "SwapLeg",
    "TransactionKind",
    "TransactionStatus",
    # Storage
    "FundRepository",
]
