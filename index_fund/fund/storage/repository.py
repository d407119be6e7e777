"""
Fund Repository.

SQLite storage for fund state and transaction records. Amounts and share
balances are stored as TEXT since they routinely exceed 64-bit integers.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

from ...core.logger import get_logger
from ...core.models import Asset
from ..models.records import FundState, FundTransaction, TransactionKind

logger = get_logger(__name__)

DEFAULT_DB_PATH = "data/index_fund.db"


class FundRepository:
    """
    SQLite repository for funds.

    Example:
        >>> repo = FundRepository("data/index_fund.db")
        >>> repo.initialize()
        >>> repo.save_fund(fund.to_state())
        >>> state = repo.load_fund(fund.fund_id)
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        """
        Initialize repository.

        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get database connection context manager.

        Commits on success and rolls back on error.
        """
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Initialize database schema."""
        if self._initialized:
            return

        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS funds (
                    fund_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    ticker TEXT NOT NULL,
                    creator TEXT NOT NULL,
                    base_asset TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fund_assets (
                    fund_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    address TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    decimals INTEGER NOT NULL,
                    PRIMARY KEY (fund_id, address)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fund_proportions (
                    fund_id TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    address TEXT NOT NULL,
                    weight INTEGER NOT NULL,
                    PRIMARY KEY (fund_id, address)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fund_holdings (
                    fund_id TEXT NOT NULL,
                    address TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    PRIMARY KEY (fund_id, address)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fund_balances (
                    fund_id TEXT NOT NULL,
                    holder TEXT NOT NULL,
                    shares TEXT NOT NULL,
                    PRIMARY KEY (fund_id, holder)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fund_managers (
                    fund_id TEXT NOT NULL,
                    manager TEXT NOT NULL,
                    PRIMARY KEY (fund_id, manager)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS fund_transactions (
                    transaction_id TEXT PRIMARY KEY,
                    fund_id TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    status TEXT NOT NULL,
                    holder TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    data TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_funds_creator
                ON funds(creator)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_transactions_fund
                ON fund_transactions(fund_id, created_at)
            """)

        self._initialized = True
        logger.info(f"FundRepository initialized: {self._db_path}")

    # =========================================================================
    # Fund State
    # =========================================================================

    def save_fund(self, state: FundState) -> None:
        """
        Replace the stored state of a fund.

        All rows of the fund are rewritten in one SQLite transaction.
        """
        self.initialize()
        now = datetime.now(timezone.utc).isoformat()
        fid = state.fund_id

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO funds
                (fund_id, name, ticker, creator, base_asset, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    fid,
                    state.name,
                    state.ticker,
                    state.creator,
                    json.dumps(state.base_asset.to_dict()),
                    state.created_at.isoformat(),
                    now,
                ),
            )

            for table in ("fund_assets", "fund_proportions", "fund_holdings",
                          "fund_balances", "fund_managers"):
                cursor.execute(f"DELETE FROM {table} WHERE fund_id = ?", (fid,))

            cursor.executemany(
                "INSERT INTO fund_assets (fund_id, position, address, symbol, decimals) "
                "VALUES (?, ?, ?, ?, ?)",
                [
                    (fid, i, a.address, a.symbol, a.decimals)
                    for i, a in enumerate(state.assets)
                ],
            )
            cursor.executemany(
                "INSERT INTO fund_proportions (fund_id, position, address, weight) "
                "VALUES (?, ?, ?, ?)",
                [
                    (fid, i, address, weight)
                    for i, (address, weight) in enumerate(state.proportions.items())
                ],
            )
            cursor.executemany(
                "INSERT INTO fund_holdings (fund_id, address, amount) VALUES (?, ?, ?)",
                [(fid, address, str(amount)) for address, amount in state.holdings.items()],
            )
            cursor.executemany(
                "INSERT INTO fund_balances (fund_id, holder, shares) VALUES (?, ?, ?)",
                [(fid, holder, str(shares)) for holder, shares in state.balances.items()],
            )
            cursor.executemany(
                "INSERT INTO fund_managers (fund_id, manager) VALUES (?, ?)",
                [(fid, manager) for manager in state.managers],
            )

        logger.debug(f"Saved fund state: {fid}")

    def load_fund(self, fund_id: str) -> Optional[FundState]:
        """
        Load a fund's state.

        Returns:
            FundState if found
        """
        self.initialize()
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM funds WHERE fund_id = ?", (fund_id,))
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_state(cursor, row)

    def list_funds(self, creator: Optional[str] = None) -> List[FundState]:
        """All stored funds, optionally filtered by creator, oldest first."""
        self.initialize()
        query = "SELECT * FROM funds"
        params: List[Any] = []
        if creator:
            query += " WHERE creator = ?"
            params.append(creator)
        query += " ORDER BY created_at ASC"

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()
            return [self._row_to_state(cursor, row) for row in rows]

    def delete_fund(self, fund_id: str) -> bool:
        """Remove a fund and its transactions. Returns True if it existed."""
        self.initialize()
        with self._get_connection() as conn:
            cursor = conn.cursor()
            for table in ("fund_assets", "fund_proportions", "fund_holdings",
                          "fund_balances", "fund_managers", "fund_transactions"):
                cursor.execute(f"DELETE FROM {table} WHERE fund_id = ?", (fund_id,))
            cursor.execute("DELETE FROM funds WHERE fund_id = ?", (fund_id,))
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info(f"Deleted fund {fund_id}")
        return deleted

    def _row_to_state(self, cursor: sqlite3.Cursor, row: sqlite3.Row) -> FundState:
        fid = row["fund_id"]

        cursor.execute(
            "SELECT * FROM fund_assets WHERE fund_id = ? ORDER BY position", (fid,)
        )
        assets = [
            Asset(address=r["address"], symbol=r["symbol"], decimals=r["decimals"])
            for r in cursor.fetchall()
        ]

        cursor.execute(
            "SELECT address, weight FROM fund_proportions WHERE fund_id = ? ORDER BY position",
            (fid,),
        )
        proportions = {r["address"]: int(r["weight"]) for r in cursor.fetchall()}

        cursor.execute("SELECT address, amount FROM fund_holdings WHERE fund_id = ?", (fid,))
        holdings = {r["address"]: int(r["amount"]) for r in cursor.fetchall()}

        cursor.execute("SELECT holder, shares FROM fund_balances WHERE fund_id = ?", (fid,))
        balances = {r["holder"]: int(r["shares"]) for r in cursor.fetchall()}

        cursor.execute(
            "SELECT manager FROM fund_managers WHERE fund_id = ? ORDER BY manager", (fid,)
        )
        managers = [r["manager"] for r in cursor.fetchall()]

        return FundState(
            fund_id=fid,
            name=row["name"],
            ticker=row["ticker"],
            creator=row["creator"],
            base_asset=Asset.from_dict(json.loads(row["base_asset"])),
            assets=assets,
            proportions=proportions,
            holdings=holdings,
            balances=balances,
            managers=managers,
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # =========================================================================
    # Transactions
    # =========================================================================

    def save_transaction(self, tx: FundTransaction) -> None:
        """Insert or update a transaction record."""
        self.initialize()
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO fund_transactions
                (transaction_id, fund_id, kind, status, holder, created_at, data)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    tx.transaction_id,
                    tx.fund_id,
                    tx.kind.value,
                    tx.status.value,
                    tx.holder,
                    tx.created_at.isoformat(),
                    json.dumps(tx.to_dict()),
                ),
            )
        logger.debug(f"Saved transaction {tx.transaction_id[:8]} ({tx.status.value})")

    def get_transaction_history(
        self,
        fund_id: str,
        kind: Optional[TransactionKind] = None,
        limit: int = 100,
    ) -> List[FundTransaction]:
        """
        Transactions of a fund, newest first.

        Args:
            fund_id: Fund identifier
            kind: Optional filter on operation kind
            limit: Maximum number of records
        """
        self.initialize()
        query = "SELECT data FROM fund_transactions WHERE fund_id = ?"
        params: List[Any] = [fund_id]
        if kind is not None:
            query += " AND kind = ?"
            params.append(kind.value)
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [FundTransaction.from_dict(json.loads(r["data"])) for r in cursor.fetchall()]

    def get_statistics(self, fund_id: str) -> Dict[str, Any]:
        """Transaction counts per kind and status for a fund."""
        self.initialize()
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT kind, status, COUNT(*) AS count
                FROM fund_transactions
                WHERE fund_id = ?
                GROUP BY kind, status
                """,
                (fund_id,),
            )
            stats: Dict[str, Any] = {"fund_id": fund_id, "total": 0, "by_kind": {}}
            for r in cursor.fetchall():
                stats["by_kind"].setdefault(r["kind"], {})[r["status"]] = r["count"]
                stats["total"] += r["count"]
            return stats
