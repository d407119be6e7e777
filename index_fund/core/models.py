"""
Core data models for the index fund engine.

Defines asset identifiers and oracle price quotes shared by the oracle,
router, and fund packages.
"""

from dataclasses import dataclass, field, replace
from fractions import Fraction
from typing import Any, Dict

# Oracle prices are USD with 8 implied decimals ($1.00 == 100_000_000)
PRICE_DECIMALS = 8
PRICE_SCALE = 10**PRICE_DECIMALS

# Proportions are integer percentage points
PERCENT_TOTAL = 100

# Basis points denominator for slippage and tolerance settings
BPS_DENOMINATOR = 10_000

NATIVE_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class Asset:
    """
    Identifier of an asset a fund can hold.

    Equality and hashing use the address only, so the same token referenced
    with a different symbol or decimals is still the same asset.

    Attributes:
        address: Token address, or the zero address for the native currency
        symbol: Display symbol
        decimals: Number of decimals of the smallest unit
    """

    address: str
    symbol: str = field(default="", compare=False)
    decimals: int = field(default=18, compare=False)

    def __post_init__(self) -> None:
        """Normalize address and validate decimals."""
        if not self.address or not self.address.strip():
            raise ValueError("Asset address must not be empty")
        if self.decimals < 0:
            raise ValueError(f"Asset decimals must be >= 0, got {self.decimals}")
        object.__setattr__(self, "address", self.address.strip().lower())

    @classmethod
    def native(cls, symbol: str = "AVAX", decimals: int = 18) -> "Asset":
        """Create the native-currency sentinel asset."""
        return cls(address=NATIVE_ADDRESS, symbol=symbol, decimals=decimals)

    @property
    def is_native(self) -> bool:
        """Check if this is the native-currency sentinel."""
        return self.address == NATIVE_ADDRESS

    @property
    def unit(self) -> int:
        """Number of smallest units in one whole token."""
        return 10**self.decimals

    def __str__(self) -> str:
        return self.symbol or self.address

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "address": self.address,
            "symbol": self.symbol,
            "decimals": self.decimals,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        """Create from dictionary."""
        return cls(
            address=data["address"],
            symbol=data.get("symbol", ""),
            decimals=int(data.get("decimals", 18)),
        )


@dataclass(frozen=True)
class PriceQuote:
    """
    USD price of an asset reported by an oracle.

    Attributes:
        asset: Quoted asset
        price: USD price of one whole token, scaled by 10**PRICE_DECIMALS
        timestamp: Unix timestamp (seconds) of the price update
    """

    asset: Asset
    price: int
    timestamp: int

    def for_asset(self, asset: Asset) -> "PriceQuote":
        """
        Rebind the quote to `asset`.

        Assets compare by address only, so the copy an oracle was keyed with
        may carry different decimals. Conversions must use the caller's copy.
        """
        if asset.decimals == self.asset.decimals and asset.symbol == self.asset.symbol:
            return self
        return replace(self, asset=asset)

    def value_of(self, amount: int) -> Fraction:
        """Exact USD value of `amount` smallest units."""
        return Fraction(amount * self.price, self.asset.unit * PRICE_SCALE)

    def amount_for(self, value: Fraction) -> Fraction:
        """Exact number of smallest units worth `value` USD."""
        if self.price <= 0:
            raise ZeroDivisionError(f"Cannot convert value with price {self.price}")
        return value * self.asset.unit * PRICE_SCALE / self.price

    def age(self, now: float) -> float:
        """Seconds elapsed since the quote was produced."""
        return now - self.timestamp

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "asset": self.asset.to_dict(),
            "price": self.price,
            "timestamp": self.timestamp,
        }
