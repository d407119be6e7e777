"""
Fund Engine.

Buy, sell and rebalance over a fund's book (proportions, holdings, ledger).

Buy and sell follow a begin / execute / commit-or-compensate discipline:
swap legs are staged on a FundTransaction and the book is written only
after every leg succeeded. When a leg fails, completed legs are reversed
with compensating swaps and the original error is re-raised. Rebalance is
best-effort: a failed leg is recorded and the remaining legs still run.
"""

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Callable, Dict, List, Optional, Tuple

from ...config.models import EngineConfig
from ...core.exceptions import (
    IndexFundError,
    InsufficientBalanceError,
    ValidationError,
    ZeroAmountError,
)
from ...core.logger import get_logger
from ...core.models import BPS_DENOMINATOR, PERCENT_TOTAL, Asset, PriceQuote
from ...core.structured_logging import FundActivityLogger, get_activity_logger
from ...oracle.base import PriceOracle
from ...router.base import SwapRouter
from ..models.records import FundTransaction, TransactionKind
from .executor import SwapExecutor
from .holdings import Holdings
from .ledger import FundLedger
from .proportions import ProportionTable
from .valuation import Valuation, Valuator, to_decimal

logger = get_logger(__name__)


@dataclass
class FundBook:
    """Mutable accounting state of one fund."""

    fund_id: str
    base_asset: Asset
    proportions: ProportionTable
    holdings: Holdings
    ledger: FundLedger


def _check_amount(amount: int, what: str) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"{what} must be an integer, got {amount!r}")
    if amount <= 0:
        raise ZeroAmountError(f"{what} must be greater than zero, got {amount}")


class FundEngine:
    """
    Orchestrates fund operations against an oracle and a swap router.

    The engine does not lock; callers serialize operations per fund.

    Example:
        >>> engine = FundEngine(oracle, router, EngineConfig())
        >>> tx = await engine.buy(book, "alice", 10**18)
        >>> tx.shares
    """

    def __init__(
        self,
        oracle: PriceOracle,
        router: SwapRouter,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        activity: Optional[FundActivityLogger] = None,
    ):
        """
        Initialize FundEngine.

        Args:
            oracle: Price source for valuation and slippage guards
            router: Swap venue
            config: Engine limits, defaults to EngineConfig()
            clock: Time source for quote staleness checks
            activity: Activity logger for mints, burns and swaps
        """
        self._config = config or EngineConfig()
        self._activity = activity or get_activity_logger("engine")
        self._valuator = Valuator(oracle, self._config, clock=clock)
        self._executor = SwapExecutor(router, self._config, activity=self._activity)

        self._transaction_history: List[FundTransaction] = []
        self._last_transaction: Optional[FundTransaction] = None

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def valuator(self) -> Valuator:
        return self._valuator

    @property
    def last_transaction(self) -> Optional[FundTransaction]:
        """Transaction of the latest operation, None if it failed validation."""
        return self._last_transaction

    def get_transaction_history(self, limit: Optional[int] = None) -> List[FundTransaction]:
        """Recent transactions, newest first."""
        history = list(reversed(self._transaction_history))
        if limit is not None:
            history = history[:limit]
        return history

    def _begin(self, book: FundBook, kind: TransactionKind, holder: str, amount: int) -> FundTransaction:
        tx = FundTransaction(fund_id=book.fund_id, kind=kind, holder=holder, amount=amount)
        tx.mark_executing()
        self._last_transaction = tx
        self._transaction_history.append(tx)
        if len(self._transaction_history) > self._config.history_size:
            self._transaction_history = self._transaction_history[-self._config.history_size:]
        logger.info(f"Transaction {tx.transaction_id[:8]} started: {kind.value} {amount} by {holder}")
        return tx

    def _fail(self, tx: FundTransaction, error: IndexFundError) -> None:
        tx.mark_failed(str(error))
        error.details.setdefault("transaction_id", tx.transaction_id)
        logger.error(f"Transaction {tx.transaction_id[:8]} failed: {error}")

    @staticmethod
    def _universe(book: FundBook) -> List[Asset]:
        """Base asset, listed assets and held assets, without duplicates."""
        seen: Dict[Asset, None] = {book.base_asset: None}
        for asset in (*book.proportions.assets, *book.holdings.assets):
            seen.setdefault(asset, None)
        return list(seen)

    async def valuate(self, book: FundBook) -> Valuation:
        """Current valuation of the fund's holdings."""
        return await self._valuator.value(book.holdings, [book.base_asset])

    # =========================================================================
    # Buy
    # =========================================================================

    async def buy(self, book: FundBook, holder: str, amount: int) -> FundTransaction:
        """
        Deposit base currency and mint shares.

        Args:
            book: Fund book to operate on
            holder: Depositor
            amount: Deposit in base units

        Returns:
            Committed transaction with minted shares

        Raises:
            ZeroAmountError: If amount <= 0 or the deposit is worth no shares
            PriceUnavailableError, FeedNotConfiguredError: On oracle failure
            SwapError: When a swap fails; completed legs are compensated
        """
        self._last_transaction = None
        if not holder:
            raise ValidationError("Holder must not be empty")
        _check_amount(amount, "Deposit")

        tx = self._begin(book, TransactionKind.BUY, holder, amount)
        base = book.base_asset

        try:
            valuation = await self._valuator.value(book.holdings, self._universe(book))
        except IndexFundError as e:
            self._fail(tx, e)
            raise
        tx.nav_before = valuation.nav_usd

        received: Dict[Asset, int] = {}
        try:
            for asset, portion in book.proportions.split(amount).items():
                if portion <= 0:
                    continue
                if asset == base:
                    received[base] = received.get(base, 0) + portion
                    continue
                leg = await self._executor.execute_leg(tx, base, asset, portion, valuation.quotes)
                received[asset] = received.get(asset, 0) + leg.amount_out

            deposit_value = sum(
                (valuation.quotes[asset].value_of(qty) for asset, qty in received.items()),
                Fraction(0),
            )
            shares = book.ledger.shares_for_deposit(
                deposit_value, valuation.nav, valuation.quotes[base]
            )
            if shares <= 0:
                raise ZeroAmountError(
                    "Deposit too small to mint any shares",
                    details={"deposit_value": str(to_decimal(deposit_value))},
                )
        except IndexFundError as e:
            await self._compensate_buy(tx, base, received, e)
            raise

        # Commit
        for asset, qty in received.items():
            book.holdings.credit(asset, qty)
        book.ledger.mint(holder, shares)

        tx.shares = shares
        tx.deposit_value = to_decimal(deposit_value)
        tx.mark_committed()

        self._activity.shares_minted(
            book.fund_id,
            holder,
            shares,
            str(tx.deposit_value),
            transaction_id=tx.transaction_id,
        )
        logger.info(
            f"Transaction {tx.transaction_id[:8]} committed: "
            f"minted {shares} shares for {amount} deposit"
        )
        return tx

    async def _compensate_buy(
        self,
        tx: FundTransaction,
        base: Asset,
        received: Dict[Asset, int],
        error: IndexFundError,
    ) -> None:
        """Swap acquired assets back to base for refund; keep the rest in kind."""
        refund = 0
        returned_in_kind: Dict[str, int] = {}

        for asset, qty in received.items():
            if asset == base:
                refund += qty
                continue
            out = await self._executor.unwind(tx, asset, base, qty)
            if out is None:
                returned_in_kind[asset.address] = qty
            else:
                refund += out

        tx.refund = refund
        tx.returned_in_kind = returned_in_kind
        tx.mark_rolled_back(str(error))

        error.details.update(
            {
                "transaction_id": tx.transaction_id,
                "refund": refund,
                "returned_in_kind": dict(returned_in_kind),
            }
        )
        self._activity.operation_rolled_back(
            tx.fund_id,
            tx.transaction_id,
            tx.kind.value,
            str(error),
            refund=refund,
            returned_in_kind=returned_in_kind,
        )
        logger.warning(
            f"Transaction {tx.transaction_id[:8]} rolled back: refund {refund}, "
            f"in kind {returned_in_kind}"
        )

    # =========================================================================
    # Sell
    # =========================================================================

    async def sell(self, book: FundBook, holder: str, shares: int) -> FundTransaction:
        """
        Redeem shares for base currency.

        Each held asset contributes floor(holding * shares / supply); redeeming
        the whole supply withdraws every holding in full.

        Returns:
            Committed transaction with `proceeds`

        Raises:
            ZeroAmountError: If shares <= 0
            InsufficientBalanceError: If shares exceed the holder's balance
            PriceUnavailableError, FeedNotConfiguredError: On oracle failure
            SwapError: When a swap fails; completed legs are compensated
        """
        self._last_transaction = None
        if not holder:
            raise ValidationError("Holder must not be empty")
        _check_amount(shares, "Share amount")
        balance = book.ledger.balance_of(holder)
        if shares > balance:
            raise InsufficientBalanceError(
                f"Cannot redeem {shares} shares, balance is {balance}",
                details={"holder": holder, "balance": balance, "shares": shares},
            )

        tx = self._begin(book, TransactionKind.SELL, holder, shares)
        base = book.base_asset

        supply = book.ledger.total_supply
        fraction = Fraction(shares, supply)
        withdrawals: Dict[Asset, int] = {}
        for asset, held in book.holdings.items():
            qty = held if shares == supply else math.floor(held * fraction)
            if qty > 0:
                withdrawals[asset] = qty

        try:
            valuation = await self._valuator.value(book.holdings, [base])
        except IndexFundError as e:
            self._fail(tx, e)
            raise
        tx.nav_before = valuation.nav_usd

        proceeds = 0
        completed: List[Tuple[Asset, int]] = []
        try:
            for asset, qty in withdrawals.items():
                if asset == base:
                    proceeds += qty
                    continue
                leg = await self._executor.execute_leg(tx, asset, base, qty, valuation.quotes)
                completed.append((asset, leg.amount_out))
                proceeds += leg.amount_out
        except IndexFundError as e:
            await self._compensate_sell(tx, book, completed, withdrawals, e)
            raise

        # Commit
        for asset, qty in withdrawals.items():
            book.holdings.debit(asset, qty)
        book.ledger.burn(holder, shares)

        tx.shares = shares
        tx.proceeds = proceeds
        tx.mark_committed()

        self._activity.shares_burned(
            book.fund_id,
            holder,
            shares,
            proceeds,
            transaction_id=tx.transaction_id,
        )
        logger.info(
            f"Transaction {tx.transaction_id[:8]} committed: "
            f"burned {shares} shares for {proceeds} proceeds"
        )
        return tx

    async def _compensate_sell(
        self,
        tx: FundTransaction,
        book: FundBook,
        completed: List[Tuple[Asset, int]],
        withdrawals: Dict[Asset, int],
        error: IndexFundError,
    ) -> None:
        """
        Buy back assets sold by completed legs.

        Holdings become original - withdrawn + reacquired per asset. Base
        proceeds that cannot be swapped back stay in the fund as base cash.
        No shares are burned.
        """
        base = book.base_asset
        stranded = 0

        for asset, out in completed:
            reacquired = await self._executor.unwind(tx, base, asset, out)
            book.holdings.debit(asset, withdrawals[asset])
            if reacquired is None:
                stranded += out
            else:
                book.holdings.credit(asset, reacquired)

        book.holdings.credit(base, stranded)

        tx.mark_rolled_back(str(error))
        error.details.update(
            {
                "transaction_id": tx.transaction_id,
                "base_retained": stranded,
            }
        )
        self._activity.operation_rolled_back(
            tx.fund_id,
            tx.transaction_id,
            tx.kind.value,
            str(error),
            base_retained=stranded,
        )
        logger.warning(
            f"Transaction {tx.transaction_id[:8]} rolled back: "
            f"{len(completed)} legs unwound, {stranded} base retained"
        )

    # =========================================================================
    # Rebalance
    # =========================================================================

    async def rebalance(self, book: FundBook, caller: str) -> FundTransaction:
        """
        Move holdings toward target weights.

        Assets further than the tolerance band below target are increased,
        those further above are decreased. Decreases run first and fund the
        increases through base cash; within each side the largest deviation
        runs first. A failed leg is recorded and skipped.

        Returns:
            COMMITTED transaction, or PARTIAL when some legs failed

        Raises:
            PriceUnavailableError, FeedNotConfiguredError: If the fund cannot
                be valued; nothing is swapped in that case
        """
        self._last_transaction = None
        tx = self._begin(book, TransactionKind.REBALANCE, caller, 0)
        base = book.base_asset
        table = book.proportions

        try:
            valuation = await self._valuator.value(book.holdings, self._universe(book))
        except IndexFundError as e:
            self._fail(tx, e)
            raise

        nav = valuation.nav
        tx.nav_before = valuation.nav_usd
        tx.weights_before = valuation.weights()

        if nav == 0:
            tx.mark_committed()
            logger.info(f"Transaction {tx.transaction_id[:8]}: empty fund, nothing to rebalance")
            return tx

        quotes = valuation.quotes
        tolerance = nav * self._config.rebalance_tolerance_bps / BPS_DENOMINATOR
        targets = {
            asset: nav * table.weight_of(asset) / PERCENT_TOTAL
            for asset in quotes
        }
        deltas = {
            asset: targets[asset] - valuation.value_of(asset)
            for asset in quotes
            if asset != base
        }

        decreases = sorted(
            (a for a, d in deltas.items() if d < -tolerance),
            key=lambda a: abs(deltas[a]),
            reverse=True,
        )
        increases = sorted(
            (a for a, d in deltas.items() if d > tolerance),
            key=lambda a: deltas[a],
            reverse=True,
        )

        for asset in decreases:
            held = book.holdings.get(asset)
            if table.weight_of(asset) == 0:
                qty = held
            else:
                qty = min(held, math.floor(quotes[asset].amount_for(-deltas[asset])))
            if qty <= 0:
                continue
            await self._rebalance_leg(tx, book, quotes, asset, base, qty)

        if increases:
            for asset, qty in self._allocate_cash(book, quotes, targets, deltas, increases).items():
                if qty <= 0:
                    continue
                await self._rebalance_leg(tx, book, quotes, base, asset, qty)

        after = Valuator.revalue(quotes, book.holdings)
        tx.weights_after = after.weights()

        failed = len(tx.failed_legs)
        if failed:
            tx.mark_partial()
        else:
            tx.mark_committed()

        self._activity.rebalance_completed(
            book.fund_id,
            tx.transaction_id,
            len(tx.successful_legs),
            failed,
        )
        logger.info(
            f"Transaction {tx.transaction_id[:8]} {tx.status.value}: "
            f"{len(tx.successful_legs)} legs executed, {failed} failed"
        )
        return tx

    def _allocate_cash(
        self,
        book: FundBook,
        quotes: Dict[Asset, PriceQuote],
        targets: Dict[Asset, Fraction],
        deltas: Dict[Asset, Fraction],
        increases: List[Asset],
    ) -> Dict[Asset, int]:
        """
        Split spendable base cash across increase legs by delta.

        Spendable cash is the base holding above the base target, capped at
        the total shortfall. The rounding remainder goes to the largest delta.
        """
        base = book.base_asset
        base_quote = quotes[base]

        reserved = math.ceil(base_quote.amount_for(targets[base]))
        spendable = book.holdings.get(base) - reserved
        total_need = sum((deltas[a] for a in increases), Fraction(0))
        budget = min(spendable, math.floor(base_quote.amount_for(total_need)))
        if budget <= 0:
            return {}

        allocation = {
            asset: math.floor(budget * deltas[asset] / total_need)
            for asset in increases
        }
        allocation[increases[0]] += budget - sum(allocation.values())
        return allocation

    async def _rebalance_leg(
        self,
        tx: FundTransaction,
        book: FundBook,
        quotes: Dict[Asset, PriceQuote],
        asset_in: Asset,
        asset_out: Asset,
        qty: int,
    ) -> None:
        """Execute and apply one rebalance swap; a failure only skips this leg."""
        try:
            leg = await self._executor.execute_leg(tx, asset_in, asset_out, qty, quotes)
        except IndexFundError as e:
            logger.warning(
                f"Transaction {tx.transaction_id[:8]} rebalance leg "
                f"{asset_in}->{asset_out} skipped: {e}"
            )
            return

        book.holdings.debit(asset_in, qty)
        book.holdings.credit(asset_out, leg.amount_out)
