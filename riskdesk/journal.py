"""
journal.py
----------

Application state for one trader: the trade list, portfolio, risk limits
and session, loaded from a ``TradeJournalDB`` on start and saved on every
change. All mutations go through one lock, so closing a trade and booking
its pnl into the portfolio is a single transition even when requests
arrive back to back.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date as date_cls
from datetime import datetime
from typing import Any, List, Optional, Tuple

from .analytics import calculate_performance_metrics
from .database import TradeJournalDB, generate_trade_id
from .logger import get_logger
from .models import OPEN, PerformanceMetrics, PortfolioState, RiskLimits, SessionState, Trade
from .portfolio import (
    apply_trade_close,
    lock_trading,
    recompute_portfolio,
    reset_daily_pnl,
    reset_max_drawdown,
    unlock_trading,
)
from .risk import risk_reward_from_levels, stop_loss_percent, validate_trade

log = get_logger("journal")

EDITABLE_FIELDS = ("date", "instrument", "notes")


@dataclass
class TradeNotFound(Exception):
    trade_id: str

    def __str__(self) -> str:
        return f"Trade {self.trade_id} not found"


@dataclass
class TradeRejected(Exception):
    errors: List[str]
    warnings: List[str]

    def __str__(self) -> str:
        return "Trade rejected: " + "; ".join(self.errors)


@dataclass
class TradeNotOpen(Exception):
    trade_id: str
    status: str

    def __str__(self) -> str:
        return f"Trade {self.trade_id} is {self.status}, only OPEN trades can be closed"


class TradingJournal:
    """Owns the journal snapshots and keeps them in sync with the store."""

    def __init__(self, db: TradeJournalDB) -> None:
        self.db = db
        self._lock = threading.Lock()
        self.trades: List[Trade] = db.list_trades()
        self.portfolio: PortfolioState = db.load_portfolio()
        self.risk_limits: RiskLimits = db.load_risk_limits()
        self.session: SessionState = db.load_session()
        self.metrics: PerformanceMetrics = calculate_performance_metrics(self.trades)

    # ---------- trades ----------
    def _set_trades(self, trades: List[Trade]) -> None:
        self.trades = trades
        self.db.save_trades(trades)
        self.metrics = calculate_performance_metrics(trades)

    def get_trade(self, trade_id: str) -> Trade:
        for t in self.trades:
            if t.id == trade_id:
                return t
        raise TradeNotFound(trade_id)

    def add_trade(
        self,
        instrument: str,
        side: str,
        entry_price: float,
        stop_loss: float,
        target: float,
        quantity: int,
        date: Optional[str] = None,
        notes: str = "",
    ) -> Tuple[Trade, List[str]]:
        """Validate and record a new OPEN trade.

        The stop distance in percent stands in for the trade's risk percent.
        Raises ``TradeRejected`` when any rule fails; otherwise returns the
        new trade and the validator's warnings.
        """
        sl_percent = stop_loss_percent(entry_price, stop_loss)
        rr = risk_reward_from_levels(entry_price, stop_loss, target)

        with self._lock:
            result = validate_trade(rr, sl_percent, self.risk_limits, self.portfolio)
            if not result.is_valid:
                log.warning("Rejected %s %s: %s", side, instrument, "; ".join(result.errors))
                raise TradeRejected(result.errors, result.warnings)

            trade = Trade(
                id=generate_trade_id(),
                date=date or date_cls.today().isoformat(),
                instrument=instrument.strip().upper(),
                side=side.upper(),
                entry_price=entry_price,
                stop_loss=stop_loss,
                target=target,
                quantity=quantity,
                risk_reward=rr,
                status=OPEN,
                notes=notes,
            )
            self._set_trades(self.trades + [trade])
            self._save_session(replace(self.session, trades_count=self.session.trades_count + 1))

        log.info("Added %s %s x%d @ %s (RR %.2f)", trade.side, trade.instrument, quantity, entry_price, rr)
        return trade, result.warnings

    def update_trade(self, trade_id: str, **updates: Any) -> Trade:
        """Edit the descriptive fields of a trade.

        Only date, instrument and notes can change; levels, risk-reward and
        the close fields are fixed once recorded.
        """
        unknown = sorted(set(updates) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValueError(f"cannot edit {', '.join(unknown)}")
        if "instrument" in updates:
            updates["instrument"] = str(updates["instrument"]).strip().upper()

        with self._lock:
            updated = replace(self.get_trade(trade_id), **updates)
            self._set_trades([updated if t.id == trade_id else t for t in self.trades])
        return updated

    def close_trade(self, trade_id: str, exit_price: float) -> Trade:
        """Close a trade and book its pnl into the portfolio atomically."""
        with self._lock:
            trade = self.get_trade(trade_id)
            if trade.status != OPEN:
                raise TradeNotOpen(trade_id, trade.status)
            closed, portfolio, session = apply_trade_close(self.portfolio, self.session, trade, exit_price)
            self._set_trades([closed if t.id == trade_id else t for t in self.trades])
            was_locked = self.portfolio.is_trading_locked
            self._save_portfolio(portfolio)
            self._save_session(session)

        log.info("Closed %s at %s, pnl %.2f", trade_id, exit_price, closed.pnl)
        if portfolio.is_trading_locked and not was_locked:
            log.warning("Trading locked: %s", portfolio.lock_reason)
        return closed

    def delete_trade(self, trade_id: str) -> None:
        with self._lock:
            self.get_trade(trade_id)
            self._set_trades([t for t in self.trades if t.id != trade_id])
        log.info("Deleted %s", trade_id)

    # ---------- portfolio ----------
    def _save_portfolio(self, portfolio: PortfolioState) -> None:
        self.portfolio = portfolio
        self.db.save_portfolio(portfolio)

    def _save_session(self, session: SessionState) -> None:
        self.session = session
        self.db.save_session(session)

    def update_portfolio(self, **updates: Any) -> PortfolioState:
        with self._lock:
            self._save_portfolio(recompute_portfolio(self.portfolio, **updates))
        return self.portfolio

    def lock_trading(self, reason: str) -> PortfolioState:
        with self._lock:
            self._save_portfolio(lock_trading(self.portfolio, reason))
        log.warning("Trading locked: %s", reason)
        return self.portfolio

    def unlock_trading(self) -> PortfolioState:
        with self._lock:
            portfolio, session = unlock_trading(self.portfolio, self.session)
            self._save_portfolio(portfolio)
            self._save_session(session)
        log.info("Trading unlocked")
        return self.portfolio

    def reset_daily_pnl(self) -> PortfolioState:
        with self._lock:
            self._save_portfolio(reset_daily_pnl(self.portfolio))
        return self.portfolio

    def reset_max_drawdown(self) -> PortfolioState:
        with self._lock:
            self._save_portfolio(reset_max_drawdown(self.portfolio))
        return self.portfolio

    # ---------- limits / session ----------
    def update_risk_limits(self, **updates: float) -> RiskLimits:
        with self._lock:
            self.risk_limits = replace(self.risk_limits, **updates)
            self.db.save_risk_limits(self.risk_limits)
        return self.risk_limits

    def start_session(self) -> SessionState:
        with self._lock:
            self._save_session(SessionState(start_time=datetime.now(), is_active=True))
        return self.session

    def end_session(self) -> SessionState:
        with self._lock:
            self._save_session(replace(self.session, is_active=False))
        return self.session
