"""
Factory module.

Provides the fund factory and the fee token it charges in.
"""

from .factory import FundFactory
from .fee_token import FeeToken, FeeTokenProtocol

__all__ = [
    "FundFactory",
    "FeeToken",
    "FeeTokenProtocol",
]
