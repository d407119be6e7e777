"""
Fund Factory.

Creates funds for a fee paid in the fee token and keeps the registry of
every fund created.
"""

import uuid
from typing import Dict, List, Optional, Sequence

from ..config.models import EngineConfig, FactoryConfig
from ..core.exceptions import (
    FundError,
    UnauthorizedError,
    ValidationError,
)
from ..core.logger import get_logger
from ..core.models import Asset
from ..core.structured_logging import AuditLogger, get_audit_logger
from ..fund.core.proportions import ProportionTable
from ..fund.fund import Fund
from ..fund.storage.repository import FundRepository
from ..oracle.base import PriceOracle
from ..router.base import SwapRouter
from .fee_token import FeeTokenProtocol

logger = get_logger(__name__)


class FundFactory:
    """
    Factory and registry of index funds.

    Example:
        >>> factory = FundFactory(fee_token, oracle, router, FactoryConfig())
        >>> fee_token.approve("alice", factory.address, factory.creation_fee)
        >>> fund = await factory.create_fund("Blue Chips", "BLUE", [wbtc, weth], "alice")
    """

    def __init__(
        self,
        fee_token: FeeTokenProtocol,
        oracle: PriceOracle,
        router: SwapRouter,
        config: Optional[FactoryConfig] = None,
        engine_config: Optional[EngineConfig] = None,
        repository: Optional[FundRepository] = None,
        base_asset: Optional[Asset] = None,
        audit: Optional[AuditLogger] = None,
    ):
        """
        Initialize FundFactory.

        Args:
            fee_token: Token creation fees are charged in
            oracle: Oracle shared by created funds
            router: Swap router shared by created funds
            config: Factory configuration
            engine_config: Engine configuration given to created funds
            repository: Optional repository attached to created funds
            base_asset: Base currency of created funds, native by default
            audit: Audit logger
        """
        self._config = config or FactoryConfig()
        self._fee_token = fee_token
        self._oracle = oracle
        self._router = router
        self._engine_config = engine_config or EngineConfig()
        self._repository = repository
        self._base_asset = base_asset or Asset.native(symbol=self._config.base_symbol)
        self._audit = audit or get_audit_logger("factory")

        self._owner = self._config.owner
        self._treasury = self._config.treasury
        self._creation_fee = self._config.creation_fee

        self._funds: List[Fund] = []
        self._by_id: Dict[str, Fund] = {}

    # =========================================================================
    # Settings
    # =========================================================================

    @property
    def address(self) -> str:
        """Spender identity to approve on the fee token."""
        return self._config.address

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def treasury(self) -> str:
        return self._treasury

    @property
    def creation_fee(self) -> int:
        return self._creation_fee

    @property
    def base_asset(self) -> Asset:
        return self._base_asset

    def _require_owner(self, caller: str, action: str) -> None:
        if caller != self._owner:
            self._audit.access_denied(caller=caller, action=action)
            raise UnauthorizedError(f"Only the factory owner may {action}", caller=caller)

    def set_creation_fee(self, caller: str, fee: int) -> None:
        """Change the creation fee (owner only)."""
        self._require_owner(caller, "set_creation_fee")
        if isinstance(fee, bool) or not isinstance(fee, int) or fee < 0:
            raise ValidationError(f"Creation fee must be a non-negative integer, got {fee!r}")
        old = self._creation_fee
        self._creation_fee = fee
        self._audit.config_changed("factory.creation_fee", old, fee, changed_by=caller)
        logger.info(f"Creation fee changed: {old} -> {fee}")

    def set_treasury(self, caller: str, treasury: str) -> None:
        """Change the fee recipient (owner only)."""
        self._require_owner(caller, "set_treasury")
        if not treasury:
            raise ValidationError("Treasury must not be empty")
        old = self._treasury
        self._treasury = treasury
        self._audit.config_changed("factory.treasury", old, treasury, changed_by=caller)
        logger.info(f"Treasury changed: {old} -> {treasury}")

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_fund(
        self,
        name: str,
        ticker: str,
        initial_assets: Sequence[Asset],
        creator: str,
        weights: Optional[Sequence[int]] = None,
    ) -> Fund:
        """
        Create a fund and charge the creation fee.

        Every argument is validated and every asset priced before the fee is
        taken, so a rejected creation costs nothing.

        Args:
            name: Fund name
            ticker: Fund ticker
            initial_assets: Assets of the fund, which fix its universe
            creator: Account paying the fee and owning the fund
            weights: Initial target weights; equal split when omitted

        Returns:
            The new Fund

        Raises:
            ValidationError: Empty name, ticker, creator or asset list, or duplicates
            InvalidProportionsError: If weights are rejected
            FeedNotConfiguredError, PriceUnavailableError: If an asset cannot be priced
            InsufficientBalanceError: If the fee allowance or balance is short
        """
        name = (name or "").strip()
        ticker = (ticker or "").strip()
        if not name or not ticker:
            raise ValidationError("Fund name and ticker must not be empty")
        if not creator:
            raise ValidationError("Creator must not be empty")

        assets = list(initial_assets)
        if not assets:
            raise ValidationError("A fund needs at least one asset")
        if len(set(assets)) != len(assets):
            raise ValidationError(
                "Duplicate assets",
                details={"assets": [a.address for a in assets]},
            )

        table = ProportionTable.equal(assets)
        if weights is not None:
            table.set_proportions(assets, list(weights))

        fund = Fund(
            fund_id=str(uuid.uuid4()),
            name=name,
            ticker=ticker,
            creator=creator,
            base_asset=self._base_asset,
            proportions=table,
            oracle=self._oracle,
            router=self._router,
            config=self._engine_config,
        )

        # Every asset must be priceable before the fee is charged
        await fund.engine.valuator.quote_all([self._base_asset, *assets])

        if self._creation_fee > 0:
            self._fee_token.transfer_from(self.address, creator, self._treasury, self._creation_fee)

        self._funds.append(fund)
        self._by_id[fund.fund_id] = fund
        if self._repository is not None:
            fund.attach_repository(self._repository)

        self._audit.fund_created(
            fund.fund_id,
            name,
            ticker,
            creator,
            assets=[a.address for a in assets],
            proportions=table.to_dict(),
            fee=self._creation_fee,
        )
        logger.info(
            f"Fund {fund.fund_id[:8]} created: {name} ({ticker}) by {creator}, "
            f"{len(assets)} assets"
        )
        return fund

    # =========================================================================
    # Registry
    # =========================================================================

    def get_total_funds(self) -> int:
        return len(self._funds)

    def get_fund(self, index: int) -> Fund:
        """Fund by creation index."""
        if index < 0 or index >= len(self._funds):
            raise FundError(
                f"No fund at index {index}",
                details={"total_funds": len(self._funds)},
            )
        return self._funds[index]

    def get_fund_by_id(self, fund_id: str) -> Optional[Fund]:
        return self._by_id.get(fund_id)

    def get_funds_by_creator(self, creator: str) -> List[Fund]:
        return [f for f in self._funds if f.creator == creator]

    @property
    def funds(self) -> List[Fund]:
        return list(self._funds)

    def register(self, fund: Fund) -> None:
        """Add an existing fund, e.g. one restored from storage, to the registry."""
        if fund.fund_id in self._by_id:
            raise ValidationError(f"Fund {fund.fund_id} already registered")
        self._funds.append(fund)
        self._by_id[fund.fund_id] = fund

    def load_funds(self) -> int:
        """Register every fund stored in the repository. Returns the count loaded."""
        if self._repository is None:
            return 0
        loaded = 0
        for state in self._repository.list_funds():
            if state.fund_id in self._by_id:
                continue
            fund = Fund.from_state(
                state,
                self._oracle,
                self._router,
                config=self._engine_config,
                repository=self._repository,
            )
            self.register(fund)
            loaded += 1
        logger.info(f"Loaded {loaded} funds from {self._repository.db_path}")
        return loaded
