"""Fund transaction records and state snapshots."""

from .records import (
    FundState,
    FundTransaction,
    SwapLeg,
    TransactionKind,
    TransactionStatus,
)

__all__ = [
    "FundState",
    "FundTransaction",
    "SwapLeg",
    "TransactionKind",
    "TransactionStatus",
]
