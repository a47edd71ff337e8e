"""
planning.py
-----------

Growth planning helpers: compounding projections, the monthly return
needed to reach a target, and how long a drawdown takes to recover.
Values are left unrounded; formatting belongs to the caller.
"""

from __future__ import annotations

import math
from typing import Dict, List

from .models import CompoundingProjection

MILESTONE_FRACTIONS = (0.25, 0.5, 0.75, 1.0)


def calculate_compounding(
    start_capital: float,
    monthly_return_percent: float,
    months: int,
) -> List[CompoundingProjection]:
    """Project capital month by month, reinvesting each month's profit."""
    projections = []
    capital = start_capital
    cumulative_profit = 0.0

    for month in range(1, months + 1):
        profit = capital * monthly_return_percent / 100
        capital += profit
        cumulative_profit += profit
        projections.append(
            CompoundingProjection(
                month=month,
                capital=capital,
                profit=profit,
                cumulative_profit=cumulative_profit,
            )
        )
    return projections


def calculate_required_monthly_return(
    current_capital: float,
    target_capital: float,
    months: int,
) -> float:
    """Monthly return (%) that compounds ``current_capital`` into ``target_capital``.

    Returns 0 when there is nothing to grow into: non-positive capital or
    horizon, or a target that is not above the current capital.
    """
    if current_capital <= 0 or target_capital <= current_capital or months <= 0:
        return 0.0
    return ((target_capital / current_capital) ** (1 / months) - 1) * 100


def growth_difficulty(required_monthly_return: float) -> str:
    if required_monthly_return <= 2:
        return "Conservative"
    if required_monthly_return <= 5:
        return "Moderate"
    if required_monthly_return <= 10:
        return "Aggressive"
    return "Unrealistic"


def growth_milestones(
    current_capital: float,
    target_capital: float,
    months: int,
) -> List[Dict[str, float]]:
    """Month at which 25/50/75/100% of the way to the target is projected.

    Uses the required monthly return; a milestone never reached inside the
    horizon reports the horizon itself.
    """
    rate = calculate_required_monthly_return(current_capital, target_capital, months)
    projections = calculate_compounding(current_capital, rate, months)

    milestones = []
    for fraction in MILESTONE_FRACTIONS:
        amount = current_capital + (target_capital - current_capital) * fraction
        month = next((p.month for p in projections if p.capital >= amount), months)
        milestones.append({"fraction": fraction * 100, "amount": amount, "month": month})
    return milestones


def trades_to_recover(
    current_equity: float,
    peak_equity: float,
    capital: float,
    risk_per_trade: float,
) -> int:
    """Winning trades at 1:2 reward needed to climb back to the peak."""
    gain_per_trade = capital * risk_per_trade / 100 * 2
    if peak_equity <= current_equity or gain_per_trade <= 0:
        return 0
    return math.ceil((peak_equity - current_equity) / gain_per_trade)


def days_to_recover(current_equity: float, peak_equity: float, daily_return_percent: float = 1.0) -> int:
    """Days of compounding at ``daily_return_percent`` needed to regain the peak."""
    if current_equity <= 0 or peak_equity <= current_equity or daily_return_percent <= 0:
        return 0
    return math.ceil(math.log(peak_equity / current_equity) / math.log(1 + daily_return_percent / 100))
