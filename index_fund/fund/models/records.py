"""
Fund Records.

Transaction records for buy, sell and rebalance operations, and the
serializable fund state snapshot used by persistence.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from ...core.models import Asset


class TransactionKind(Enum):
    """Operation recorded by a fund transaction."""

    BUY = "buy"
    SELL = "sell"
    REBALANCE = "rebalance"


class TransactionStatus(Enum):
    """Fund transaction status."""

    PENDING = "pending"
    EXECUTING = "executing"
    COMMITTED = "committed"
    PARTIAL = "partial"  # rebalance finished with failed legs
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


def _decimal_or_none(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


@dataclass
class SwapLeg:
    """
    One swap executed (or attempted) inside a fund transaction.

    Attributes:
        asset_in: Asset sold
        asset_out: Asset bought
        amount_in: Exact input amount
        min_amount_out: Minimum output requested from the router
        amount_out: Realized output, None when the swap failed
        compensation: True for legs that unwind an earlier leg
        error_message: Router or oracle error when the swap failed
    """

    asset_in: Asset
    asset_out: Asset
    amount_in: int
    min_amount_out: int = 0
    amount_out: Optional[int] = None
    compensation: bool = False
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        return self.amount_out is not None and self.error_message is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "asset_in": self.asset_in.to_dict(),
            "asset_out": self.asset_out.to_dict(),
            "amount_in": self.amount_in,
            "min_amount_out": self.min_amount_out,
            "amount_out": self.amount_out,
            "compensation": self.compensation,
            "error_message": self.error_message,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SwapLeg":
        """Create from dictionary."""
        return cls(
            asset_in=Asset.from_dict(data["asset_in"]),
            asset_out=Asset.from_dict(data["asset_out"]),
            amount_in=int(data["amount_in"]),
            min_amount_out=int(data.get("min_amount_out", 0)),
            amount_out=data.get("amount_out"),
            compensation=bool(data.get("compensation", False)),
            error_message=data.get("error_message"),
            timestamp=_parse_datetime(data.get("timestamp")) or datetime.now(timezone.utc),
        )


@dataclass
class FundTransaction:
    """
    Record of one buy, sell or rebalance.

    Buy and sell are all-or-nothing: they end COMMITTED or ROLLED_BACK
    (FAILED when nothing was executed). Rebalance ends COMMITTED, or
    PARTIAL when some legs failed.

    Attributes:
        transaction_id: Unique transaction identifier
        fund_id: Fund the transaction belongs to
        kind: Buy, sell or rebalance
        status: Current transaction status
        holder: Depositor, redeemer, or the account that triggered a rebalance
        amount: Base deposit (buy) or shares redeemed (sell)
        shares: Shares minted (buy) or burned (sell)
        proceeds: Base amount paid out by a sell
        deposit_value: USD value of the assets a buy acquired
        nav_before: Fund NAV in USD before the operation
        legs: Swap legs in execution order
        refund: Base amount returned to a depositor after a rolled back buy
        returned_in_kind: Asset address -> amount returned unswapped
        weights_before: Asset address -> weight in percentage points
        weights_after: Asset address -> weight in percentage points
        error_message: Error message if failed or rolled back
    """

    fund_id: str
    kind: TransactionKind
    holder: str
    amount: int = 0
    transaction_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: TransactionStatus = TransactionStatus.PENDING
    shares: int = 0
    proceeds: int = 0
    deposit_value: Optional[Decimal] = None
    nav_before: Optional[Decimal] = None
    legs: List[SwapLeg] = field(default_factory=list)
    refund: int = 0
    returned_in_kind: Dict[str, int] = field(default_factory=dict)
    weights_before: Dict[str, Decimal] = field(default_factory=dict)
    weights_after: Dict[str, Decimal] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        """Check if transaction is pending."""
        return self.status == TransactionStatus.PENDING

    @property
    def is_completed(self) -> bool:
        """Check if transaction reached a final status."""
        return self.status in (
            TransactionStatus.COMMITTED,
            TransactionStatus.PARTIAL,
            TransactionStatus.ROLLED_BACK,
            TransactionStatus.FAILED,
        )

    @property
    def is_successful(self) -> bool:
        """Check if the transaction changed fund state as requested."""
        return self.status in (TransactionStatus.COMMITTED, TransactionStatus.PARTIAL)

    @property
    def successful_legs(self) -> List[SwapLeg]:
        return [leg for leg in self.legs if leg.success and not leg.compensation]

    @property
    def failed_legs(self) -> List[SwapLeg]:
        return [leg for leg in self.legs if not leg.success and not leg.compensation]

    def mark_executing(self) -> None:
        """Mark transaction as executing."""
        self.status = TransactionStatus.EXECUTING

    def mark_committed(self) -> None:
        """Mark transaction as committed."""
        self.status = TransactionStatus.COMMITTED
        self.completed_at = datetime.now(timezone.utc)

    def mark_partial(self) -> None:
        """Mark a rebalance that completed with failed legs."""
        self.status = TransactionStatus.PARTIAL
        self.completed_at = datetime.now(timezone.utc)

    def mark_rolled_back(self, error: Optional[str] = None) -> None:
        """Mark transaction as rolled back."""
        self.status = TransactionStatus.ROLLED_BACK
        self.completed_at = datetime.now(timezone.utc)
        if error:
            self.error_message = error

    def mark_failed(self, error: str) -> None:
        """Mark transaction as failed."""
        self.status = TransactionStatus.FAILED
        self.completed_at = datetime.now(timezone.utc)
        self.error_message = error

    def add_leg(self, leg: SwapLeg) -> None:
        """Append a swap leg."""
        self.legs.append(leg)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "transaction_id": self.transaction_id,
            "fund_id": self.fund_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "holder": self.holder,
            "amount": self.amount,
            "shares": self.shares,
            "proceeds": self.proceeds,
            "deposit_value": str(self.deposit_value) if self.deposit_value is not None else None,
            "nav_before": str(self.nav_before) if self.nav_before is not None else None,
            "legs": [leg.to_dict() for leg in self.legs],
            "refund": self.refund,
            "returned_in_kind": dict(self.returned_in_kind),
            "weights_before": {k: str(v) for k, v in self.weights_before.items()},
            "weights_after": {k: str(v) for k, v in self.weights_after.items()},
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FundTransaction":
        """Create from dictionary."""
        return cls(
            transaction_id=data.get("transaction_id", str(uuid.uuid4())),
            fund_id=data["fund_id"],
            kind=TransactionKind(data["kind"]),
            status=TransactionStatus(data.get("status", "pending")),
            holder=data.get("holder", ""),
            amount=int(data.get("amount", 0)),
            shares=int(data.get("shares", 0)),
            proceeds=int(data.get("proceeds", 0)),
            deposit_value=_decimal_or_none(data.get("deposit_value")),
            nav_before=_decimal_or_none(data.get("nav_before")),
            legs=[SwapLeg.from_dict(leg) for leg in data.get("legs", [])],
            refund=int(data.get("refund", 0)),
            returned_in_kind={k: int(v) for k, v in data.get("returned_in_kind", {}).items()},
            weights_before={k: Decimal(v) for k, v in data.get("weights_before", {}).items()},
            weights_after={k: Decimal(v) for k, v in data.get("weights_after", {}).items()},
            created_at=_parse_datetime(data.get("created_at")) or datetime.now(timezone.utc),
            completed_at=_parse_datetime(data.get("completed_at")),
            error_message=data.get("error_message"),
        )


@dataclass
class FundState:
    """
    Serializable snapshot of a fund.

    Proportions, holdings and balances are keyed by asset address or holder
    account; `assets` carries the full Asset records of the fund's universe.

    Attributes:
        fund_id: Fund identifier
        name: Fund name
        ticker: Fund ticker
        creator: Account that created the fund
        base_asset: Base currency of deposits and redemptions
        assets: Assets the fund may hold, in creation order
        proportions: Asset address -> target weight, in table order
        holdings: Asset address -> amount in custody
        balances: Holder -> share balance
        managers: Accounts allowed to manage the fund besides the creator
        created_at: Creation time
    """

    fund_id: str
    name: str
    ticker: str
    creator: str
    base_asset: Asset
    assets: List[Asset] = field(default_factory=list)
    proportions: Dict[str, int] = field(default_factory=dict)
    holdings: Dict[str, int] = field(default_factory=dict)
    balances: Dict[str, int] = field(default_factory=dict)
    managers: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_supply(self) -> int:
        return sum(self.balances.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "fund_id": self.fund_id,
            "name": self.name,
            "ticker": self.ticker,
            "creator": self.creator,
            "base_asset": self.base_asset.to_dict(),
            "assets": [asset.to_dict() for asset in self.assets],
            "proportions": dict(self.proportions),
            "holdings": dict(self.holdings),
            "balances": dict(self.balances),
            "managers": list(self.managers),
            "total_supply": self.total_supply,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FundState":
        """Create from dictionary."""
        return cls(
            fund_id=data["fund_id"],
            name=data["name"],
            ticker=data["ticker"],
            creator=data["creator"],
            base_asset=Asset.from_dict(data["base_asset"]),
            assets=[Asset.from_dict(a) for a in data.get("assets", [])],
            proportions={k: int(v) for k, v in data.get("proportions", {}).items()},
            holdings={k: int(v) for k, v in data.get("holdings", {}).items()},
            balances={k: int(v) for k, v in data.get("balances", {}).items()},
            managers=list(data.get("managers", [])),
            created_at=_parse_datetime(data.get("created_at")) or datetime.now(timezone.utc),
        )
