"""
Fund.

A single index fund: identity, access control and the public operations,
wrapping one FundBook behind a per-fund asyncio.Lock so that buy, sell,
rebalance and proportion changes never interleave.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Set

from ..config.models import EngineConfig
from ..core.exceptions import UnauthorizedError, ValidationError
from ..core.logger import get_logger
from ..core.models import Asset
from ..core.structured_logging import (
    AuditLogger,
    FundActivityLogger,
    get_activity_logger,
    get_audit_logger,
    get_correlation_id,
    set_fund_context,
    with_correlation_id,
)
from ..oracle.base import PriceOracle
from ..router.base import SwapRouter
from .core.engine import FundBook, FundEngine
from .core.holdings import Holdings
from .core.ledger import FundLedger
from .core.proportions import ProportionEntry, ProportionTable
from .models.records import FundState, FundTransaction

if TYPE_CHECKING:
    from .storage.repository import FundRepository

logger = get_logger(__name__)


class Fund:
    """
    Multi-asset index fund.

    Example:
        >>> fund = Fund("f-1", "Blue Chips", "BLUE", "alice", Asset.native(),
        ...             ProportionTable.equal([wbtc, weth]), oracle, router)
        >>> await fund.buy("alice", 10**18)
        >>> fund.balance_of("alice")
    """

    def __init__(
        self,
        fund_id: str,
        name: str,
        ticker: str,
        creator: str,
        base_asset: Asset,
        proportions: ProportionTable,
        oracle: PriceOracle,
        router: SwapRouter,
        config: Optional[EngineConfig] = None,
        repository: Optional["FundRepository"] = None,
        holdings: Optional[Holdings] = None,
        ledger: Optional[FundLedger] = None,
        managers: Optional[Sequence[str]] = None,
        created_at: Optional[datetime] = None,
        clock: Optional[Callable[[], float]] = None,
        audit: Optional[AuditLogger] = None,
        activity: Optional[FundActivityLogger] = None,
    ):
        """
        Initialize Fund.

        Args:
            fund_id: Unique fund identifier
            name: Fund name
            ticker: Fund ticker
            creator: Account that created the fund
            base_asset: Currency of deposits and redemptions
            proportions: Target weights and allowed asset universe
            oracle: Price oracle
            router: Swap router
            config: Engine configuration
            repository: Optional repository to save state after each operation
            holdings: Existing holdings (restored funds)
            ledger: Existing share ledger (restored funds)
            managers: Accounts allowed to manage besides the creator
            created_at: Creation time
            clock: Time source for quote staleness checks
            audit: Audit logger
            activity: Activity logger for share transfers
        """
        if not name or not ticker:
            raise ValidationError("Fund name and ticker must not be empty")
        if not creator:
            raise ValidationError("Fund creator must not be empty")

        self._fund_id = fund_id
        self._name = name
        self._ticker = ticker
        self._creator = creator
        self._created_at = created_at or datetime.now(timezone.utc)
        self._managers: Set[str] = set(managers or [])
        self._repository = repository
        self._audit = audit or get_audit_logger("fund")
        self._activity = activity or get_activity_logger("fund")

        self._book = FundBook(
            fund_id=fund_id,
            base_asset=base_asset,
            proportions=proportions,
            holdings=holdings or Holdings(),
            ledger=ledger or FundLedger(),
        )
        self._engine = FundEngine(oracle, router, config, clock=clock)

        # Serializes every state-changing operation on this fund
        self._lock = asyncio.Lock()

    # =========================================================================
    # Identity
    # =========================================================================

    @property
    def fund_id(self) -> str:
        return self._fund_id

    @property
    def fund_name(self) -> str:
        return self._name

    @property
    def fund_ticker(self) -> str:
        return self._ticker

    @property
    def creator(self) -> str:
        return self._creator

    @property
    def base_asset(self) -> Asset:
        return self._book.base_asset

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def managers(self) -> List[str]:
        return sorted(self._managers)

    @property
    def proportions(self) -> ProportionTable:
        return self._book.proportions

    @property
    def engine(self) -> FundEngine:
        return self._engine

    # =========================================================================
    # Access control
    # =========================================================================

    def is_manager(self, account: str) -> bool:
        """Creator and granted managers may manage the fund."""
        return account == self._creator or account in self._managers

    def _deny(self, caller: str, action: str, role: str) -> None:
        self._audit.access_denied(caller=caller, action=action, fund_id=self._fund_id)
        raise UnauthorizedError(
            f"Only the fund {role} may {action}",
            caller=caller,
            details={"fund_id": self._fund_id},
        )

    def _require_creator(self, caller: str, action: str) -> None:
        if caller != self._creator:
            self._deny(caller, action, "creator")

    def _require_manager(self, caller: str, action: str) -> None:
        if not self.is_manager(caller):
            self._deny(caller, action, "creator or a manager")

    async def add_manager(self, caller: str, manager: str) -> None:
        """Grant the manager role (creator only)."""
        self._require_creator(caller, "add_manager")
        if not manager:
            raise ValidationError("Manager must not be empty")
        async with self._lock:
            self._managers.add(manager)
            self._audit.manager_changed(self._fund_id, caller, manager, granted=True)
            self._save()

    async def remove_manager(self, caller: str, manager: str) -> None:
        """Revoke the manager role (creator only)."""
        self._require_creator(caller, "remove_manager")
        async with self._lock:
            if manager not in self._managers:
                raise ValidationError(f"{manager} is not a manager of {self._fund_id}")
            self._managers.discard(manager)
            self._audit.manager_changed(self._fund_id, caller, manager, granted=False)
            self._save()

    # =========================================================================
    # Operations
    # =========================================================================

    @with_correlation_id
    async def buy(self, holder: str, amount: int) -> FundTransaction:
        """
        Deposit `amount` base units and mint shares to `holder`.

        Raises:
            ZeroAmountError: If amount <= 0
            OracleError, SwapError: Operation rolled back, see error details
        """
        async with self._lock:
            set_fund_context(self._fund_id, get_correlation_id())
            try:
                return await self._engine.buy(self._book, holder, amount)
            finally:
                self._record(self._engine.last_transaction)

    @with_correlation_id
    async def sell(self, holder: str, shares: int) -> FundTransaction:
        """
        Redeem `shares` of `holder` for base currency.

        Returns:
            Transaction whose `proceeds` is the base amount paid out
        """
        async with self._lock:
            set_fund_context(self._fund_id, get_correlation_id())
            try:
                return await self._engine.sell(self._book, holder, shares)
            finally:
                self._record(self._engine.last_transaction)

    @with_correlation_id
    async def rebalance(self, caller: str) -> FundTransaction:
        """Move holdings toward target weights (creator or manager)."""
        self._require_manager(caller, "rebalance")
        async with self._lock:
            set_fund_context(self._fund_id, get_correlation_id())
            return await self._rebalance_locked(caller)

    async def _rebalance_locked(self, caller: str) -> FundTransaction:
        try:
            return await self._engine.rebalance(self._book, caller)
        finally:
            self._record(self._engine.last_transaction)

    @with_correlation_id
    async def set_proportions(
        self,
        caller: str,
        assets: Sequence[Asset],
        weights: Sequence[int],
    ) -> Optional[FundTransaction]:
        """
        Replace the target weights (creator or manager).

        Moves no assets unless rebalance_on_set_proportions is enabled, in
        which case the rebalance transaction is returned.

        Raises:
            UnauthorizedError: If caller may not manage the fund
            InvalidProportionsError: If the weights are rejected; the
                previous table is kept
        """
        self._require_manager(caller, "set_proportions")
        async with self._lock:
            set_fund_context(self._fund_id, get_correlation_id())
            table = self._book.proportions
            old = table.to_dict()
            table.set_proportions(assets, weights)
            self._audit.proportions_changed(self._fund_id, caller, old, table.to_dict())
            logger.info(f"Fund {self._fund_id} proportions set by {caller}: {table}")
            self._save()

            if self._engine.config.rebalance_on_set_proportions:
                return await self._rebalance_locked(caller)
            return None

    async def transfer(self, sender: str, recipient: str, shares: int) -> None:
        """Move shares between holders."""
        async with self._lock:
            self._book.ledger.transfer(sender, recipient, shares)
            self._activity.shares_transferred(self._fund_id, sender, recipient, shares)
            logger.info(f"Fund {self._fund_id}: {sender} transferred {shares} shares to {recipient}")
            self._save()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_token_balance(self, asset: Asset) -> int:
        """Amount of an asset held by the fund."""
        return self._book.holdings.get(asset)

    def target_proportions(self, asset: Asset) -> int:
        """Target weight of an asset in percentage points."""
        return self._book.proportions.weight_of(asset)

    def balance_of(self, holder: str) -> int:
        return self._book.ledger.balance_of(holder)

    @property
    def total_supply(self) -> int:
        return self._book.ledger.total_supply

    async def get_nav(self) -> Decimal:
        """Current net asset value in USD."""
        valuation = await self._engine.valuate(self._book)
        return valuation.nav_usd

    def get_transaction_history(self, limit: Optional[int] = None) -> List[FundTransaction]:
        """Recent transactions of this fund, newest first."""
        return self._engine.get_transaction_history(limit)

    # =========================================================================
    # Persistence
    # =========================================================================

    def attach_repository(self, repository: "FundRepository") -> None:
        self._repository = repository
        self._save()

    def _record(self, tx: Optional[FundTransaction]) -> None:
        if tx is None or self._repository is None:
            return
        self._repository.save_transaction(tx)
        if tx.is_successful or tx.refund or tx.legs:
            self._save()

    def _save(self) -> None:
        if self._repository is not None:
            self._repository.save_fund(self.to_state())

    def to_state(self) -> FundState:
        """Serializable snapshot of the fund."""
        book = self._book
        return FundState(
            fund_id=self._fund_id,
            name=self._name,
            ticker=self._ticker,
            creator=self._creator,
            base_asset=book.base_asset,
            assets=list(book.proportions.allowed_assets),
            proportions=book.proportions.to_dict(),
            holdings=book.holdings.to_dict(),
            balances=book.ledger.snapshot(),
            managers=self.managers,
            created_at=self._created_at,
        )

    @classmethod
    def from_state(
        cls,
        state: FundState,
        oracle: PriceOracle,
        router: SwapRouter,
        config: Optional[EngineConfig] = None,
        repository: Optional["FundRepository"] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> "Fund":
        """Rebuild a fund from a snapshot."""
        by_address = {asset.address: asset for asset in [state.base_asset, *state.assets]}

        def resolve(address: str) -> Asset:
            return by_address.get(address) or Asset(address=address)

        proportions = ProportionTable(
            state.assets,
            [ProportionEntry(resolve(addr), weight) for addr, weight in state.proportions.items()],
        )
        holdings = Holdings({resolve(addr): amount for addr, amount in state.holdings.items()})

        return cls(
            fund_id=state.fund_id,
            name=state.name,
            ticker=state.ticker,
            creator=state.creator,
            base_asset=state.base_asset,
            proportions=proportions,
            oracle=oracle,
            router=router,
            config=config,
            repository=repository,
            holdings=holdings,
            ledger=FundLedger(state.balances),
            managers=state.managers,
            created_at=state.created_at,
            clock=clock,
        )

    def __repr__(self) -> str:
        return (
            f"Fund(id={self._fund_id!r}, name={self._name!r}, ticker={self._ticker!r}, "
            f"supply={self.total_supply})"
        )
