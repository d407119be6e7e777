"""
Index Fund CLI.

Command-line inspection of persisted funds: list funds, show a fund's
state, and browse its transaction history.
"""

import argparse
import asyncio
import sys
from typing import Any, Dict, List, Optional

from .config import ConfigError, load_config
from .core.logger import configure_logging, get_logger, setup_logger
from .fund.models.records import FundState, FundTransaction, TransactionKind
from .fund.storage.repository import FundRepository

logger = get_logger(__name__)


class FundCLI:
    """
    Command-line interface over a FundRepository.

    Example:
        >>> cli = FundCLI(FundRepository("data/index_fund.db"))
        >>> await cli.run(["list"])
        >>> await cli.run(["history", fund_id, "--kind", "buy"])
    """

    def __init__(self, repository: Optional[FundRepository] = None):
        """
        Initialize CLI.

        Args:
            repository: Repository to read funds from
        """
        self._repository = repository
        self._parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog="index-fund",
            description="Inspect persisted index funds",
        )
        parser.add_argument(
            "--config", "-c",
            type=str,
            default="config/index_fund.yaml",
            help="Path to configuration file (default: config/index_fund.yaml)",
        )
        parser.add_argument(
            "--env", "-e",
            type=str,
            help="Configuration environment overlay",
        )
        parser.add_argument(
            "--db",
            type=str,
            help="SQLite database path (overrides storage.db_path)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        # list command
        list_parser = subparsers.add_parser("list", help="List funds")
        list_parser.add_argument(
            "--creator",
            type=str,
            help="Only funds created by this account",
        )

        # show command
        show_parser = subparsers.add_parser("show", help="Show a fund's state")
        show_parser.add_argument("fund_id", type=str, help="Fund identifier")

        # history command
        history_parser = subparsers.add_parser("history", help="View transaction history")
        history_parser.add_argument("fund_id", type=str, help="Fund identifier")
        history_parser.add_argument(
            "--kind", "-k",
            type=str,
            choices=[k.value for k in TransactionKind],
            help="Filter by operation",
        )
        history_parser.add_argument(
            "--limit", "-l",
            type=int,
            default=20,
            help="Maximum records to show (default: 20)",
        )

        # stats command
        stats_parser = subparsers.add_parser("stats", help="Transaction counts for a fund")
        stats_parser.add_argument("fund_id", type=str, help="Fund identifier")

        return parser

    @property
    def parser(self) -> argparse.ArgumentParser:
        return self._parser

    async def run(self, args: List[str]) -> int:
        """
        Run CLI command.

        Args:
            args: Command-line arguments

        Returns:
            Exit code (0 for success)
        """
        if not args:
            self._parser.print_help()
            return 0

        parsed = self._parser.parse_args(args)

        if not parsed.command:
            self._parser.print_help()
            return 0

        try:
            if self._repository is None:
                self._repository = self._open_repository(parsed)
            handler = getattr(self, f"_cmd_{parsed.command}", None)
            if handler:
                return await handler(parsed)
            print(f"Unknown command: {parsed.command}")
            return 1
        except Exception as e:
            print(f"Error: {e}")
            logger.error(f"CLI error: {e}")
            return 1

    def _open_repository(self, args: argparse.Namespace) -> FundRepository:
        """Repository from --db, or from the storage section of the config."""
        if args.db:
            return FundRepository(args.db)
        try:
            config = load_config(args.config, env=args.env)
        except ConfigError as e:
            raise ConfigError(f"Cannot open repository: {e}") from e
        configure_logging(config.log_level)
        return FundRepository(config.storage.db_path)

    # =========================================================================
    # Command Handlers
    # =========================================================================

    async def _cmd_list(self, args: argparse.Namespace) -> int:
        """Handle list command."""
        funds = self._repository.list_funds(creator=args.creator)
        if not funds:
            print("No funds found")
            return 0
        self._print_fund_list(funds)
        return 0

    async def _cmd_show(self, args: argparse.Namespace) -> int:
        """Handle show command."""
        state = self._repository.load_fund(args.fund_id)
        if state is None:
            print(f"Error: Fund {args.fund_id} not found")
            return 1
        self._print_fund(state)
        return 0

    async def _cmd_history(self, args: argparse.Namespace) -> int:
        """Handle history command."""
        kind = TransactionKind(args.kind) if args.kind else None
        records = self._repository.get_transaction_history(
            args.fund_id,
            kind=kind,
            limit=args.limit,
        )
        if not records:
            print("No transactions found")
            return 0
        self._print_history(records)
        return 0

    async def _cmd_stats(self, args: argparse.Namespace) -> int:
        """Handle stats command."""
        self._print_statistics(self._repository.get_statistics(args.fund_id))
        return 0

    # =========================================================================
    # Output Formatting
    # =========================================================================

    def _print_fund_list(self, funds: List[FundState]) -> None:
        print("\n=== Funds ===")
        print(f"{'Fund ID':<38} {'Ticker':<8} {'Name':<24} {'Creator':<16} {'Supply':>24}")
        print("-" * 114)
        for state in funds:
            print(
                f"{state.fund_id:<38} {state.ticker:<8} {state.name[:24]:<24} "
                f"{state.creator[:16]:<16} {state.total_supply:>24}"
            )

    def _print_fund(self, state: FundState) -> None:
        symbols = {a.address: a.symbol or a.address for a in [state.base_asset, *state.assets]}

        print(f"\n=== {state.name} ({state.ticker}) ===")
        print(f"Fund ID:      {state.fund_id}")
        print(f"Creator:      {state.creator}")
        print(f"Base Asset:   {state.base_asset}")
        print(f"Created:      {state.created_at.strftime('%Y-%m-%d %H:%M')}")
        print(f"Total Supply: {state.total_supply}")
        if state.managers:
            print(f"Managers:     {', '.join(state.managers)}")

        print("\n--- Target Proportions ---")
        for address, weight in state.proportions.items():
            print(f"  {symbols.get(address, address):<12} {weight:>3}%")

        print("\n--- Holdings ---")
        if not state.holdings:
            print("  (none)")
        for address, amount in state.holdings.items():
            print(f"  {symbols.get(address, address):<12} {amount:>30}")

        print("\n--- Share Balances ---")
        if not state.balances:
            print("  (none)")
        for holder, shares in sorted(state.balances.items(), key=lambda kv: -kv[1]):
            print(f"  {holder:<24} {shares:>30}")

    def _print_history(self, records: List[FundTransaction]) -> None:
        print("\n=== Transaction History ===")
        print(
            f"{'Timestamp':<18} {'ID':<10} {'Kind':<10} {'Status':<12} "
            f"{'Holder':<16} {'Amount':>24} {'Shares':>24}"
        )
        print("-" * 120)
        for tx in records:
            timestamp = tx.created_at.strftime("%Y-%m-%d %H:%M")
            print(
                f"{timestamp:<18} {tx.transaction_id[:8]:<10} {tx.kind.value:<10} "
                f"{tx.status.value:<12} {tx.holder[:16]:<16} {tx.amount:>24} {tx.shares:>24}"
            )
            if tx.error_message:
                print(f"{'':<18} error: {tx.error_message}")

    def _print_statistics(self, stats: Dict[str, Any]) -> None:
        print(f"\n=== Transaction Statistics ({stats['fund_id']}) ===")
        print(f"Total Transactions: {stats['total']}")
        for kind, statuses in stats["by_kind"].items():
            counts = ", ".join(f"{status}={count}" for status, count in statuses.items())
            print(f"  {kind}: {counts}")


def main(argv: Optional[List[str]] = None) -> int:
    """Console entry point."""
    setup_logger()
    cli = FundCLI()
    return asyncio.run(cli.run(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    sys.exit(main())
