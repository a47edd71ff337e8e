"""
analytics.py
-------------

This module contains functions to compute performance metrics from a list
of Trade objects. Splitting analytics into its own module makes it easy
to reuse these functions in different contexts (web app, command-line
tool, tests) without coupling them to UI or storage concerns.

Only CLOSED trades with a recorded pnl take part in any statistic.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

import pandas as pd

from .models import LOSS, WIN, PerformanceMetrics, Trade

PERIODS = ("daily", "weekly", "monthly")


def closed_trades(trades: Iterable[Trade]) -> List[Trade]:
    """Closed trades with a pnl, in the order given."""
    return [t for t in trades if t.is_closed]


def calculate_performance_metrics(trades: Iterable[Trade]) -> PerformanceMetrics:
    """Compute performance statistics for the given trades.

    Parameters
    ----------
    trades: Iterable[Trade]
        Journal trades in chronological order, any status.

    Returns
    -------
    PerformanceMetrics
        All-zero metrics with streak type 'NONE' when nothing is closed.

    Break-even trades (pnl == 0) count toward ``total_trades`` but are
    neither wins nor losses for the win rate and averages. The streak
    counters treat them as loss steps, so a journal ending on a break-even
    trade reports a LOSS streak.
    """
    closed = closed_trades(trades)
    if not closed:
        return PerformanceMetrics()

    pnls = [t.pnl for t in closed]
    wins = [pnl for pnl in pnls if pnl > 0]
    losses = [pnl for pnl in pnls if pnl < 0]

    total_wins = sum(wins)
    total_losses = abs(sum(losses))
    avg_win = total_wins / len(wins) if wins else 0.0
    avg_loss = total_losses / len(losses) if losses else 0.0

    win_rate = len(wins) / len(closed) * 100
    expectancy = avg_win * (win_rate / 100) - avg_loss * (1 - win_rate / 100)

    if total_losses > 0:
        profit_factor = total_wins / total_losses
    else:
        profit_factor = float("inf") if total_wins > 0 else 0.0

    max_win_streak = max_loss_streak = 0
    win_run = loss_run = 0
    for pnl in pnls:
        if pnl > 0:
            win_run += 1
            loss_run = 0
            max_win_streak = max(max_win_streak, win_run)
        else:
            loss_run += 1
            win_run = 0
            max_loss_streak = max(max_loss_streak, loss_run)

    if pnls[-1] > 0:
        streak_type, current_streak = WIN, win_run
    else:
        streak_type, current_streak = LOSS, loss_run

    return PerformanceMetrics(
        total_trades=len(closed),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=win_rate,
        avg_win=avg_win,
        avg_loss=avg_loss,
        expectancy=expectancy,
        profit_factor=profit_factor,
        max_win_streak=max_win_streak,
        max_loss_streak=max_loss_streak,
        current_streak=current_streak,
        streak_type=streak_type,
    )


def equity_curve(trades: Iterable[Trade], start_capital: float) -> List[Dict[str, Any]]:
    """Equity after each closed trade, starting from ``start_capital``.

    Returns a list of {trade, date, equity, drawdown} points; point 0 is the
    starting capital. Break-even trades do not add a point.
    """
    equity = peak = start_capital
    points = [{"trade": 0, "date": "Start", "equity": equity, "drawdown": 0.0}]
    for i, t in enumerate([t for t in closed_trades(trades) if t.pnl], start=1):
        equity += t.pnl
        peak = max(peak, equity)
        drawdown = (peak - equity) / peak * 100 if peak > 0 else 0.0
        points.append({"trade": i, "date": t.date, "equity": equity, "drawdown": drawdown})
    return points


def pnl_by_period(trades: Iterable[Trade], period: str = "daily") -> pd.DataFrame:
    """Sum closed-trade pnl per day, week or month.

    Weeks are keyed by the Sunday that starts them; months by ``YYYY-MM``.
    Returns a DataFrame with columns ['period', 'pnl'] sorted by period.
    """
    if period not in PERIODS:
        raise ValueError(f"period must be one of {', '.join(PERIODS)}")

    rows = [{"date": t.date, "pnl": t.pnl} for t in closed_trades(trades)]
    if not rows:
        return pd.DataFrame(columns=["period", "pnl"])

    df = pd.DataFrame(rows)
    dates = pd.to_datetime(df["date"])
    if period == "daily":
        df["period"] = dates.dt.strftime("%Y-%m-%d")
    elif period == "weekly":
        # dayofweek: Monday=0 .. Sunday=6
        week_start = dates - pd.to_timedelta((dates.dt.dayofweek + 1) % 7, unit="D")
        df["period"] = week_start.dt.strftime("%Y-%m-%d")
    else:
        df["period"] = dates.dt.strftime("%Y-%m")

    out = df.groupby("period", as_index=False)["pnl"].sum().sort_values("period")
    return out.reset_index(drop=True)


def expectancy_grade(expectancy: float) -> str:
    """Letter grade for expectancy per trade, from A+ (>= 500) down to F (negative)."""
    if expectancy >= 500:
        return "A+"
    if expectancy >= 250:
        return "A"
    if expectancy >= 100:
        return "B"
    if expectancy >= 0:
        return "C"
    return "F"


def profit_factor_grade(profit_factor: float) -> str:
    """Label a profit factor; an unbounded one (no losses) reads Excellent."""
    if profit_factor >= 3:
        return "Excellent"
    if profit_factor >= 2:
        return "Good"
    if profit_factor >= 1.5:
        return "Fair"
    if profit_factor >= 1:
        return "Break-even"
    return "Losing"


def total_pnl(trades: Iterable[Trade]) -> float:
    return sum(t.pnl for t in closed_trades(trades))
