"""
portfolio.py
------------

State transitions of the portfolio snapshot. Each function takes a full
snapshot and returns a new one with every derived field recomputed, so a
caller applying a trade close never persists a half-updated portfolio.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Tuple

from .models import OPEN, PortfolioState, SessionState, Trade
from .risk import calculate_drawdown

CONSECUTIVE_LOSS_LIMIT = 3
CONSECUTIVE_LOSS_REASON = "3 consecutive losses - mandatory cooldown"

LEVERAGE_OPTIONS = (1, 2, 3, 5, 10)


def default_portfolio(capital: float = 100000.0, leverage: float = 1.0) -> PortfolioState:
    return recompute_portfolio(
        PortfolioState(capital=capital, leverage=leverage, current_equity=capital, peak_equity=capital)
    )


def recompute_portfolio(previous: PortfolioState, **updates: Any) -> PortfolioState:
    """Merge ``updates`` into ``previous`` and refresh the derived fields.

    - effective_capital = capital * leverage
    - drawdown is measured against the peak as it stood before this update
    - max_drawdown only ever grows
    - peak_equity is raised when equity exceeds it, never lowered
    """
    merged = replace(previous, **updates)
    drawdown = calculate_drawdown(merged.current_equity, merged.peak_equity)
    return replace(
        merged,
        effective_capital=merged.capital * merged.leverage,
        drawdown=drawdown,
        max_drawdown=max(merged.max_drawdown, drawdown),
        peak_equity=max(merged.peak_equity, merged.current_equity),
    )


def apply_trade_close(
    portfolio: PortfolioState,
    session: SessionState,
    trade: Trade,
    exit_price: float,
) -> Tuple[Trade, PortfolioState, SessionState]:
    """Close ``trade`` and book its pnl in one step.

    The pnl is added to the daily, weekly and monthly accumulators and to
    current equity. A losing close extends the consecutive-loss count and
    locks trading once it reaches the limit; any other close resets it,
    including a break-even close.

    Raises ``ValueError`` unless ``trade`` is OPEN, so a pnl is never
    booked twice.
    """
    if trade.status != OPEN:
        raise ValueError(f"Trade {trade.id} is {trade.status}, not OPEN")

    closed = trade.close(exit_price)
    pnl = closed.pnl

    updated = recompute_portfolio(
        portfolio,
        daily_pnl=portfolio.daily_pnl + pnl,
        weekly_pnl=portfolio.weekly_pnl + pnl,
        monthly_pnl=portfolio.monthly_pnl + pnl,
        current_equity=portfolio.current_equity + pnl,
    )

    if pnl < 0:
        losses = session.consecutive_losses + 1
        session = replace(session, consecutive_losses=losses)
        if losses >= CONSECUTIVE_LOSS_LIMIT:
            updated = lock_trading(updated, CONSECUTIVE_LOSS_REASON)
    else:
        session = replace(session, consecutive_losses=0)

    return closed, updated, session


def lock_trading(portfolio: PortfolioState, reason: str) -> PortfolioState:
    return replace(portfolio, is_trading_locked=True, lock_reason=reason)


def unlock_trading(portfolio: PortfolioState, session: SessionState) -> Tuple[PortfolioState, SessionState]:
    return (
        replace(portfolio, is_trading_locked=False, lock_reason=None),
        replace(session, consecutive_losses=0),
    )


def reset_daily_pnl(portfolio: PortfolioState) -> PortfolioState:
    return recompute_portfolio(portfolio, daily_pnl=0.0)


def reset_max_drawdown(portfolio: PortfolioState) -> PortfolioState:
    """Explicit reset; max_drawdown restarts from the current drawdown."""
    return recompute_portfolio(portfolio, max_drawdown=0.0)


def leverage_table(capital: float, options=LEVERAGE_OPTIONS) -> List[Dict[str, float]]:
    """Exposure figures for each leverage choice at 1% risk and a half-capital position."""
    rows = []
    for leverage in options:
        effective = capital * leverage
        max_position = effective * 0.5
        rows.append(
            {
                "leverage": leverage,
                "effective_capital": effective,
                "risk_amount": capital * 0.01,
                "max_position": max_position,
                "margin_required": max_position / leverage,
            }
        )
    return rows
