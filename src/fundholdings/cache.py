"""
Holdings cache: the persistence interface consumed by the orchestrator.

The orchestrator only depends on the ``HoldingsCache`` protocol. The SQLite
implementation stores one snapshot per (fund, as-of date): a write replaces
the rows of any earlier snapshot for that date, so a cached snapshot always
comes from a single provider.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

from .models import CachedHoldings, DataQuality, HoldingRow

logger = logging.getLogger(__name__)


class HoldingsCache(Protocol):
    """Persistence operations used by the orchestrator."""

    def write(
        self,
        fund_symbol: str,
        holdings: Sequence[HoldingRow],
        as_of_date: str,
        provider: str,
        data_quality: DataQuality,
    ) -> None: ...

    def has_recent(self, fund_symbol: str, max_age_days: int) -> bool: ...

    def read_latest(self, fund_symbol: str) -> Optional[CachedHoldings]: ...


class SQLiteHoldingsCache:
    """
    SQLite-backed holdings cache.

    A write deletes the fund's rows for the as-of date and inserts the new
    snapshot in one transaction. Rows are unique on
    ``(fund_symbol, holding_key, as_of_date)``; a provider listing the same
    holding twice keeps the last row.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def _init_db(self) -> None:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS fund_holdings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    fund_symbol TEXT NOT NULL,
                    holding_key TEXT NOT NULL,
                    holding_symbol TEXT,
                    holding_name TEXT NOT NULL,
                    cusip TEXT,
                    isin TEXT,
                    asset_type TEXT,
                    weight_percent REAL NOT NULL,
                    shares_held REAL,
                    market_value REAL,
                    as_of_date TEXT NOT NULL,
                    provider TEXT NOT NULL,
                    data_quality TEXT NOT NULL,
                    fetched_at TEXT NOT NULL,
                    UNIQUE(fund_symbol, holding_key, as_of_date)
                );
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_fund_holdings_symbol_date
                ON fund_holdings(fund_symbol, as_of_date);
                """
            )

    def write(
        self,
        fund_symbol: str,
        holdings: Sequence[HoldingRow],
        as_of_date: str,
        provider: str,
        data_quality: DataQuality,
    ) -> None:
        """Store one snapshot, replacing any earlier snapshot for the same as-of date."""
        fetched_at = datetime.now().isoformat(timespec="seconds")
        rows = [
            (
                fund_symbol,
                h.identity,
                h.holding_symbol,
                h.holding_name,
                h.cusip,
                h.isin,
                h.asset_type,
                h.weight_percent,
                h.shares_held,
                h.market_value,
                as_of_date,
                provider,
                data_quality,
                fetched_at,
            )
            for h in holdings
        ]
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM fund_holdings WHERE fund_symbol = ? AND as_of_date = ?",
                (fund_symbol, as_of_date),
            )
            conn.executemany(
                """
                INSERT INTO fund_holdings (
                    fund_symbol, holding_key, holding_symbol, holding_name, cusip,
                    isin, asset_type, weight_percent, shares_held, market_value,
                    as_of_date, provider, data_quality, fetched_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(fund_symbol, holding_key, as_of_date) DO UPDATE SET
                    holding_symbol = excluded.holding_symbol,
                    holding_name = excluded.holding_name,
                    cusip = excluded.cusip,
                    isin = excluded.isin,
                    asset_type = excluded.asset_type,
                    weight_percent = excluded.weight_percent,
                    shares_held = excluded.shares_held,
                    market_value = excluded.market_value,
                    provider = excluded.provider,
                    data_quality = excluded.data_quality,
                    fetched_at = excluded.fetched_at
                """,
                rows,
            )
        logger.debug(f"Cached {len(rows)} holdings for {fund_symbol} as of {as_of_date}")

    def has_recent(self, fund_symbol: str, max_age_days: int) -> bool:
        """True if the fund was cached within the last ``max_age_days`` days."""
        cutoff = (datetime.now() - timedelta(days=max_age_days)).isoformat(
            timespec="seconds"
        )
        with self._connect() as conn:
            row = conn.execute(
                "SELECT MAX(fetched_at) FROM fund_holdings WHERE fund_symbol = ?",
                (fund_symbol,),
            ).fetchone()
        return bool(row and row[0] and row[0] >= cutoff)

    def read_latest(self, fund_symbol: str) -> Optional[CachedHoldings]:
        """Return the snapshot with the newest as-of date, heaviest holdings first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT holding_symbol, holding_name, cusip, isin, asset_type,
                       weight_percent, shares_held, market_value,
                       as_of_date, provider, data_quality
                FROM fund_holdings
                WHERE fund_symbol = ?
                  AND as_of_date = (
                      SELECT MAX(as_of_date) FROM fund_holdings WHERE fund_symbol = ?
                  )
                ORDER BY weight_percent DESC, id ASC
                """,
                (fund_symbol, fund_symbol),
            ).fetchall()
        if not rows:
            return None

        holdings: List[HoldingRow] = [
            HoldingRow(
                holding_symbol=row[0],
                holding_name=row[1],
                cusip=row[2],
                isin=row[3],
                asset_type=row[4],
                weight_percent=row[5],
                shares_held=row[6],
                market_value=row[7],
            )
            for row in rows
        ]
        first = rows[0]
        return CachedHoldings(
            fund_symbol=fund_symbol,
            holdings=holdings,
            as_of_date=first[8],
            provider=first[9],
            data_quality=first[10],
        )

    def clear(self, fund_symbol: Optional[str] = None) -> int:
        """Delete cached rows for one fund, or all rows. Returns rows deleted."""
        with self._connect() as conn:
            if fund_symbol is None:
                cursor = conn.execute("DELETE FROM fund_holdings")
            else:
                cursor = conn.execute(
                    "DELETE FROM fund_holdings WHERE fund_symbol = ?", (fund_symbol,)
                )
            return cursor.rowcount

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(db_path={self.db_path!r})"
