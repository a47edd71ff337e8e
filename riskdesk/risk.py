"""
risk.py
-------

Pure risk calculations: position sizing, pre-trade validation, Kelly
sizing, margin estimates and the drawdown risk policy. These functions
never raise for numeric input and never touch storage; degenerate inputs
(a zero stop, no losses recorded) collapse to zero instead of failing,
because callers feed them straight from form fields sanitised to 0.
"""

from __future__ import annotations

import math
from typing import Optional

from .models import (
    FUTURES,
    OPTIONS_BUY,
    OPTIONS_SELL,
    MarginResult,
    PortfolioState,
    PositionSizeResult,
    RiskLimits,
    ValidationResult,
)

DEFAULT_RISK_LIMITS = RiskLimits(
    risk_per_trade=1.0,
    daily_loss_limit=3.0,
    weekly_loss_limit=6.0,
    monthly_loss_limit=12.0,
)

MIN_RISK_REWARD = 2.0
DRAWDOWN_WARNING_PERCENT = 10.0
DRAWDOWN_MAX_PERCENT = 20.0

# Flat approximations of exchange margin, not a live SPAN schedule.
FUTURES_MARGIN_RATE = 0.12
OPTIONS_SELL_MARGIN_RATE = 0.15

KELLY_CAP_PERCENT = 25.0

# (upper bound of drawdown %, share of base risk still allowed)
DRAWDOWN_RISK_TIERS = (
    (5.0, 1.0),
    (10.0, 0.75),
    (15.0, 0.5),
    (20.0, 0.25),
)

DRAWDOWN_LEVELS = (
    (5.0, "Safe"),
    (10.0, "Caution"),
    (15.0, "Warning"),
    (20.0, "Critical"),
)


def calculate_position_size(
    capital: float,
    risk_percent: float,
    stop_loss_percent: float,
    entry_price: float,
    leverage: float = 1.0,
) -> PositionSizeResult:
    """Size a position so that hitting the stop loses ``risk_percent`` of capital.

    The quantity is floored, so ``quantity * stop distance`` never exceeds
    the risk budget. A zero stop distance yields a zero quantity.
    ``max_profit`` assumes the minimum 1:2 reward, whatever the real target.
    """
    risk_amount = capital * risk_percent / 100
    stop_loss_amount = entry_price * stop_loss_percent / 100

    quantity = math.floor(risk_amount / stop_loss_amount) if stop_loss_amount > 0 else 0
    position_size = quantity * entry_price
    margin_required = position_size / leverage if leverage else position_size

    return PositionSizeResult(
        quantity=quantity,
        position_size=position_size,
        margin_required=margin_required,
        max_loss=risk_amount,
        max_profit=risk_amount * 2,
        risk_amount=risk_amount,
    )


def calculate_drawdown(current_equity: float, peak_equity: float) -> float:
    """Percentage fall of ``current_equity`` from ``peak_equity`` (never negative)."""
    if peak_equity <= 0:
        return 0.0
    return max(0.0, (peak_equity - current_equity) / peak_equity * 100)


def validate_trade(
    risk_reward: float,
    risk_percent: float,
    limits: RiskLimits,
    portfolio: PortfolioState,
) -> ValidationResult:
    """Check a proposed trade against the risk rules.

    Every rule is evaluated; messages keep the order the rules run in.
    Only ``errors`` make the trade invalid.
    """
    errors = []
    warnings = []

    if risk_reward < MIN_RISK_REWARD:
        errors.append(f"Risk-Reward ratio {risk_reward:.2f} is below minimum 1:2")

    if risk_percent > limits.risk_per_trade:
        errors.append(
            f"Risk {_num(risk_percent)}% exceeds limit of {_num(limits.risk_per_trade)}%"
        )

    for label, pnl, limit in (
        ("Daily", portfolio.daily_pnl, limits.daily_loss_limit),
        ("Weekly", portfolio.weekly_pnl, limits.weekly_loss_limit),
        ("Monthly", portfolio.monthly_pnl, limits.monthly_loss_limit),
    ):
        if pnl < 0 and _loss_percent(pnl, portfolio.capital) >= limit:
            errors.append(f"{label} loss limit of {_num(limit)}% breached")

    if portfolio.drawdown > DRAWDOWN_WARNING_PERCENT:
        warnings.append(f"Current drawdown {portfolio.drawdown:.2f}% is elevated")

    if portfolio.drawdown > DRAWDOWN_MAX_PERCENT:
        errors.append(f"Drawdown {portfolio.drawdown:.2f}% exceeds maximum threshold")

    if portfolio.is_trading_locked:
        errors.append(f"Trading is locked: {portfolio.lock_reason}")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def calculate_kelly_criterion(win_rate: float, avg_win: float, avg_loss: float) -> float:
    """Half-Kelly risk percentage, floored at 0 and capped at 25.

    The result is already halved: a caller displaying "full Kelly" doubles it.
    ``win_rate`` is a percentage (0-100).
    """
    if avg_loss == 0 or win_rate == 0 or win_rate == 100:
        return 0.0

    win_probability = win_rate / 100
    loss_ratio = avg_win / avg_loss
    if loss_ratio == 0:
        return 0.0

    kelly = win_probability - (1 - win_probability) / loss_ratio
    return max(0.0, min(kelly * 50, KELLY_CAP_PERCENT))


def calculate_margin_requirements(
    instrument_price: float,
    quantity: float,
    instrument_type: str,
    option_premium: Optional[float] = None,
    lot_size: float = 1,
) -> MarginResult:
    """Approximate margin for futures and options positions.

    ``total_exposure`` is the contract value for every instrument type.
    """
    contract_value = instrument_price * quantity * lot_size
    premium = (option_premium or 0.0) * quantity * lot_size

    futures_margin = 0.0
    options_premium = 0.0
    options_selling_margin = 0.0

    if instrument_type == FUTURES:
        futures_margin = contract_value * FUTURES_MARGIN_RATE
    elif instrument_type == OPTIONS_BUY:
        options_premium = premium
    elif instrument_type == OPTIONS_SELL:
        options_selling_margin = contract_value * OPTIONS_SELL_MARGIN_RATE + premium

    return MarginResult(
        futures_margin=futures_margin,
        options_premium=options_premium,
        options_selling_margin=options_selling_margin,
        total_exposure=contract_value,
    )


def get_adjusted_risk_for_drawdown(base_risk: float, drawdown_percent: float) -> float:
    """Scale ``base_risk`` down as drawdown deepens; 0 from 20% means stop trading.

    A drawdown exactly on a boundary falls in the deeper tier.
    """
    for upper, share in DRAWDOWN_RISK_TIERS:
        if drawdown_percent < upper:
            return base_risk * share
    return 0.0


def drawdown_level(drawdown_percent: float) -> str:
    """Name the drawdown tier: Safe, Caution, Warning, Critical or STOP."""
    for upper, name in DRAWDOWN_LEVELS:
        if drawdown_percent < upper:
            return name
    return "STOP"


# ---------- trade entry helpers ----------

def stop_loss_percent(entry_price: float, stop_loss: float) -> float:
    """Distance from entry to stop as a percentage of entry."""
    if entry_price == 0:
        return 0.0
    return abs((entry_price - stop_loss) / entry_price) * 100


def risk_reward_from_levels(entry_price: float, stop_loss: float, target: float) -> float:
    """Target distance divided by stop distance; 0 when the stop sits on entry."""
    sl_percent = stop_loss_percent(entry_price, stop_loss)
    if sl_percent <= 0:
        return 0.0
    target_percent = abs((target - entry_price) / entry_price) * 100
    return target_percent / sl_percent


def trade_risk_percent(entry_price: float, stop_loss: float, quantity: float, capital: float) -> float:
    """Money at risk between entry and stop, as a percentage of capital."""
    if capital <= 0:
        return 0.0
    return abs(entry_price - stop_loss) * quantity / capital * 100


def _loss_percent(pnl: float, capital: float) -> float:
    if capital <= 0:
        return float("inf")
    return abs(pnl) / capital * 100


def _num(value: float) -> str:
    """Render a number the way it was typed: 3.0 -> '3', 1.5 -> '1.5'."""
    return str(int(value)) if float(value).is_integer() else str(value)
