"""
models.py
---------

Defines the value records used across the risk desk: trades, risk limits,
the portfolio snapshot and the result records produced by the calculators.
Keeping these in a separate module lets the calculators, the storage layer
and the web app share one data model without importing each other.

All records are frozen dataclasses. Nothing in the package mutates them;
updates always build a new record with ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

LONG = "LONG"
SHORT = "SHORT"

OPEN = "OPEN"
CLOSED = "CLOSED"
CANCELLED = "CANCELLED"

WIN = "WIN"
LOSS = "LOSS"
NONE = "NONE"

FUTURES = "FUTURES"
OPTIONS_BUY = "OPTIONS_BUY"
OPTIONS_SELL = "OPTIONS_SELL"


def compute_pnl(side: str, entry_price: float, exit_price: float, quantity: float) -> float:
    """Profit or loss of a position closed at ``exit_price``.

    For long positions, PnL = (exit_price - entry_price) * quantity.
    For short positions, PnL = (entry_price - exit_price) * quantity.
    """
    if side.upper() == LONG:
        return (exit_price - entry_price) * quantity
    return (entry_price - exit_price) * quantity


@dataclass(frozen=True)
class Trade:
    """Represents a single journal entry.

    Attributes
    ----------
    id: str
        Journal identifier (``TRD-...``), assigned by the store.
    date: str
        Trade date as ``YYYY-MM-DD``.
    instrument: str
        Symbol or name of the traded instrument (e.g. 'NIFTY', 'BTCUSDT').
    side: str
        Either 'LONG' or 'SHORT'. Determines how PnL is calculated.
    entry_price, stop_loss, target: float
        Planned levels at entry.
    quantity: int
        Units traded, always positive.
    risk_reward: float
        Target distance / stop distance, fixed when the trade is created.
    status: str
        'OPEN', 'CLOSED' or 'CANCELLED'.
    exit_price, pnl: Optional[float]
        Present only once the trade is CLOSED.
    notes: Optional[str]
        User provided notes or comments about the trade.
    """

    id: str
    date: str
    instrument: str
    side: str
    entry_price: float
    stop_loss: float
    target: float
    quantity: int
    risk_reward: float
    status: str = OPEN
    exit_price: Optional[float] = None
    pnl: Optional[float] = None
    notes: Optional[str] = None

    def close(self, exit_price: float) -> "Trade":
        """Return a CLOSED copy of this trade exited at ``exit_price``."""
        pnl = compute_pnl(self.side, self.entry_price, exit_price, self.quantity)
        return replace(self, exit_price=exit_price, pnl=pnl, status=CLOSED)

    @property
    def is_closed(self) -> bool:
        return self.status == CLOSED and self.pnl is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RiskLimits:
    """Loss limits, all expressed as a percentage of capital."""

    risk_per_trade: float
    daily_loss_limit: float
    weekly_loss_limit: float
    monthly_loss_limit: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskLimits":
        return cls(**{k: float(data[k]) for k in cls.__dataclass_fields__})


@dataclass(frozen=True)
class PortfolioState:
    """Snapshot of the trader's account.

    ``effective_capital``, ``drawdown`` and ``max_drawdown`` are derived
    fields; build new snapshots through ``portfolio.recompute_portfolio`` so
    they stay consistent with capital, leverage and equity.
    """

    capital: float
    leverage: float = 1.0
    effective_capital: float = 0.0
    current_equity: float = 0.0
    peak_equity: float = 0.0
    daily_pnl: float = 0.0
    weekly_pnl: float = 0.0
    monthly_pnl: float = 0.0
    drawdown: float = 0.0
    max_drawdown: float = 0.0
    is_trading_locked: bool = False
    lock_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortfolioState":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass(frozen=True)
class SessionState:
    """Trading session bookkeeping used by the consecutive-loss lock."""

    start_time: datetime = field(default_factory=datetime.now)
    is_active: bool = False
    trades_count: int = 0
    consecutive_losses: int = 0
    cooldown_end_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "is_active": self.is_active,
            "trades_count": self.trades_count,
            "consecutive_losses": self.consecutive_losses,
            "cooldown_end_time": self.cooldown_end_time.isoformat() if self.cooldown_end_time else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionState":
        cooldown = data.get("cooldown_end_time")
        return cls(
            start_time=datetime.fromisoformat(data["start_time"]),
            is_active=bool(data.get("is_active", False)),
            trades_count=int(data.get("trades_count", 0)),
            consecutive_losses=int(data.get("consecutive_losses", 0)),
            cooldown_end_time=datetime.fromisoformat(cooldown) if cooldown else None,
        )


@dataclass(frozen=True)
class PositionSizeResult:
    quantity: int
    position_size: float
    margin_required: float
    max_loss: float
    max_profit: float
    risk_amount: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ValidationResult:
    """Verdict of the trade validator.

    ``errors`` block the trade, ``warnings`` are informational only.
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MarginResult:
    futures_margin: float
    options_premium: float
    options_selling_margin: float
    total_exposure: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CompoundingProjection:
    month: int
    capital: float
    profit: float
    cumulative_profit: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PerformanceMetrics:
    """Aggregate statistics over the closed trades of a journal.

    Attributes
    ----------
    total_trades: int
        Closed trades with a recorded pnl, break-even trades included.
    winning_trades, losing_trades: int
        Trades with pnl > 0 and pnl < 0 respectively.
    win_rate: float
        winning_trades / total_trades * 100.
    avg_win, avg_loss: float
        Mean winner and mean absolute loser.
    expectancy: float
        Expected pnl per trade from win rate and average win/loss.
    profit_factor: float
        Gross profit / gross loss; ``inf`` when there are wins but no losses.
    max_win_streak, max_loss_streak, current_streak: int
        Run lengths in chronological order.
    streak_type: str
        'WIN', 'LOSS' or 'NONE'.
    """

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    expectancy: float = 0.0
    profit_factor: float = 0.0
    max_win_streak: int = 0
    max_loss_streak: int = 0
    current_streak: int = 0
    streak_type: str = NONE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

