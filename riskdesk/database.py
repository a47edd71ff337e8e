"""
database.py
-----------

This module encapsulates all interactions with the SQLite database used to
persist the journal. Keeping storage here means the calculators never see
a connection, and the backend can be swapped without touching them.

Trades live in their own table. The portfolio, the risk limits and the
session are whole records stored as JSON under fixed keys in a small
key/value table.
"""

import csv
import io
import json
import random
import sqlite3
import string
import time
from typing import Any, Dict, Iterable, List, Optional

from .logger import get_logger
from .models import PortfolioState, RiskLimits, SessionState, Trade
from .portfolio import default_portfolio
from .risk import DEFAULT_RISK_LIMITS

log = get_logger("database")

PORTFOLIO_KEY = "portfolio"
RISK_LIMITS_KEY = "risk_limits"
SESSION_KEY = "session"

CSV_HEADERS = ["Date", "Instrument", "Side", "Entry", "StopLoss", "Target", "Qty", "Exit", "P&L", "RR", "Status", "Notes"]

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_trade_id() -> str:
    """``TRD-<epoch ms>-<9 base36 chars>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"TRD-{int(time.time() * 1000)}-{suffix}"


class TradeJournalDB:
    """SQLite-backed repository for trades and account state."""

    def __init__(self, db_path: str = "riskdesk.db") -> None:
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._create_tables()

    # ---------- schema ----------
    def _create_tables(self) -> None:
        """Create required tables (trades, state)."""
        with self.conn:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS trades (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    date TEXT NOT NULL, -- YYYY-MM-DD
                    instrument TEXT NOT NULL,
                    side TEXT NOT NULL CHECK (side IN ('LONG','SHORT')),
                    entry_price REAL NOT NULL,
                    stop_loss REAL NOT NULL,
                    target REAL NOT NULL,
                    quantity INTEGER NOT NULL,
                    risk_reward REAL NOT NULL,
                    status TEXT NOT NULL CHECK (status IN ('OPEN','CLOSED','CANCELLED')),
                    exit_price REAL,
                    pnl REAL,
                    notes TEXT
                )
                """
            )
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL -- JSON
                )
                """
            )

    # ---------- trades ----------
    def list_trades(self) -> List[Trade]:
        """Return all trades in insertion order."""
        cur = self.conn.execute("SELECT * FROM trades ORDER BY seq")
        return [self._row_to_trade(r) for r in cur.fetchall()]

    def save_trades(self, trades: Iterable[Trade]) -> None:
        """Replace the stored trade list with ``trades``."""
        trades = list(trades)
        with self.conn:
            self.conn.execute("DELETE FROM trades")
            self.conn.executemany(
                """
                INSERT INTO trades
                    (id, date, instrument, side, entry_price, stop_loss, target,
                     quantity, risk_reward, status, exit_price, pnl, notes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        t.id,
                        t.date,
                        t.instrument,
                        t.side,
                        t.entry_price,
                        t.stop_loss,
                        t.target,
                        t.quantity,
                        t.risk_reward,
                        t.status,
                        t.exit_price,
                        t.pnl,
                        t.notes,
                    )
                    for t in trades
                ],
            )
        log.debug("Saved %d trades to %s", len(trades), self.db_path)

    def _row_to_trade(self, row: sqlite3.Row) -> Trade:
        """Convert DB row -> Trade."""
        return Trade(
            id=row["id"],
            date=row["date"],
            instrument=row["instrument"],
            side=row["side"],
            entry_price=row["entry_price"],
            stop_loss=row["stop_loss"],
            target=row["target"],
            quantity=row["quantity"],
            risk_reward=row["risk_reward"],
            status=row["status"],
            exit_price=row["exit_price"],
            pnl=row["pnl"],
            notes=row["notes"],
        )

    # ---------- state records ----------
    def _get(self, key: str) -> Optional[Dict[str, Any]]:
        row = self.conn.execute("SELECT value FROM state WHERE key = ?", (key,)).fetchone()
        return json.loads(row["value"]) if row else None

    def _put(self, key: str, value: Dict[str, Any]) -> None:
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO state(key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                (key, json.dumps(value)),
            )

    def load_portfolio(self) -> PortfolioState:
        data = self._get(PORTFOLIO_KEY)
        return PortfolioState.from_dict(data) if data else default_portfolio()

    def save_portfolio(self, portfolio: PortfolioState) -> None:
        self._put(PORTFOLIO_KEY, portfolio.to_dict())

    def load_risk_limits(self) -> RiskLimits:
        data = self._get(RISK_LIMITS_KEY)
        return RiskLimits.from_dict(data) if data else DEFAULT_RISK_LIMITS

    def save_risk_limits(self, limits: RiskLimits) -> None:
        self._put(RISK_LIMITS_KEY, limits.to_dict())

    def load_session(self) -> SessionState:
        data = self._get(SESSION_KEY)
        return SessionState.from_dict(data) if data else SessionState()

    def save_session(self, session: SessionState) -> None:
        self._put(SESSION_KEY, session.to_dict())

    # ---------- housekeeping ----------
    def close(self) -> None:
        self.conn.close()


def _cell(value: Any) -> str:
    """Blank for missing values; integral floats without a trailing '.0'."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def trades_to_csv(trades: Iterable[Trade]) -> str:
    """Export trades with the journal's fixed column order."""
    out = io.StringIO()
    w = csv.writer(out, lineterminator="\n")
    w.writerow(CSV_HEADERS)
    for t in trades:
        w.writerow([
            t.date,
            t.instrument,
            t.side,
            _cell(t.entry_price),
            _cell(t.stop_loss),
            _cell(t.target),
            _cell(t.quantity),
            _cell(t.exit_price),
            _cell(t.pnl),
            f"{t.risk_reward:.2f}",
            t.status,
            t.notes or "",
        ])
    return out.getvalue().rstrip("\n")
