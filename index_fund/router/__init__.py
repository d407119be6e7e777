"""
Swap router module.

Provides the SwapRouter interface and an oracle-priced simulated venue.
"""

from .base import SwapRouter
from .simulated import SimulatedSwapRouter, SwapFill

__all__ = [
    "SwapRouter",
    "SimulatedSwapRouter",
    "SwapFill",
]
