"""
app.py
------

Flask application exposing the risk desk as a JSON API: the trade
journal, the portfolio controls and the stateless calculators. Screens
and charts are rendered by whatever front-end consumes these endpoints;
every number is returned raw and formatted by the client.

To run the application:
    1. Install the package (``pip install -e .``).
    2. Execute ``python -m riskdesk.app``.
    3. Navigate to http://localhost:5004/ for the dashboard summary.

Configuration comes from the environment:
    SECRET_KEY          Flask secret (default ``dev-secret``)
    RISKDESK_DB         SQLite path (default ``riskdesk.db``)
    RISKDESK_LOG_LEVEL  logging level name (default ``INFO``)

Note: the Flask development server is intended for local use only.
"""
import math
import os
from datetime import date
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request

from . import analytics, planning, risk
from .database import TradeJournalDB, trades_to_csv
from .journal import TradeNotFound, TradeNotOpen, TradeRejected, TradingJournal
from .logger import get_logger, setup_logging
from .models import OPEN
from .portfolio import leverage_table

log = get_logger("app")

PORTFOLIO_FIELDS = ("capital", "leverage", "current_equity", "peak_equity", "daily_pnl", "weekly_pnl", "monthly_pnl")
RISK_LIMIT_FIELDS = ("risk_per_trade", "daily_loss_limit", "weekly_loss_limit", "monthly_loss_limit")


def _number(data: Dict[str, Any], key: str, default: float = 0.0) -> float:
    """Parse a numeric field; blank or non-numeric input becomes ``default``."""
    try:
        value = float(data.get(key, default))
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def _required_number(data: Dict[str, Any], key: str) -> float:
    try:
        return float(data[key])
    except KeyError:
        raise ValueError(f"{key} is required")
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number")


def _finite(value: float) -> Optional[float]:
    """JSON has no infinity; an unbounded profit factor is sent as null."""
    return value if math.isfinite(value) else None


def _metrics_dict(metrics) -> Dict[str, Any]:
    out = metrics.to_dict()
    out["profit_factor"] = _finite(metrics.profit_factor)
    out["expectancy_grade"] = analytics.expectancy_grade(metrics.expectancy)
    out["profit_factor_grade"] = analytics.profit_factor_grade(metrics.profit_factor)
    return out


def create_app(db_path: Optional[str] = None) -> Flask:
    setup_logging(os.getenv("RISKDESK_LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    db = TradeJournalDB(db_path or os.getenv("RISKDESK_DB", "riskdesk.db"))
    journal = TradingJournal(db)
    app.config["JOURNAL"] = journal

    @app.errorhandler(TradeNotFound)
    def trade_not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(TradeRejected)
    def trade_rejected(e):
        return jsonify({"error": "Trade rejected", "errors": e.errors, "warnings": e.warnings}), 422

    @app.errorhandler(TradeNotOpen)
    def trade_not_open(e):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(ValueError)
    def bad_input(e):
        return jsonify({"error": str(e)}), 400

    def payload() -> Dict[str, Any]:
        return request.get_json(silent=True) or request.form.to_dict() or {}

    # ---------- dashboard ----------
    @app.route("/")
    def index():
        p = journal.portfolio
        limits = journal.risk_limits
        return jsonify({
            "portfolio": p.to_dict(),
            "risk_limits": limits.to_dict(),
            "session": journal.session.to_dict(),
            "metrics": _metrics_dict(journal.metrics),
            "drawdown_level": risk.drawdown_level(p.drawdown),
            "adjusted_risk": risk.get_adjusted_risk_for_drawdown(limits.risk_per_trade, p.drawdown),
            "open_trades": sum(1 for t in journal.trades if t.status == OPEN),
            "total_pnl": analytics.total_pnl(journal.trades),
        })

    # ---------- trades ----------
    @app.route("/trades", methods=["GET"])
    def list_trades():
        return jsonify([t.to_dict() for t in journal.trades])

    @app.route("/trades", methods=["POST"])
    def add_trade():
        data = payload()
        instrument = str(data.get("instrument", "")).strip()
        side = str(data.get("side", "LONG")).strip().upper()
        if not instrument:
            raise ValueError("instrument is required")
        if side not in ("LONG", "SHORT"):
            raise ValueError("side must be LONG or SHORT")

        entry = _required_number(data, "entry_price")
        stop = _required_number(data, "stop_loss")
        target = _required_number(data, "target")
        quantity = int(_required_number(data, "quantity"))
        if not (entry and stop and target and quantity > 0):
            raise ValueError("entry_price, stop_loss, target and quantity must be non-zero")

        trade, warnings = journal.add_trade(
            instrument=instrument,
            side=side,
            entry_price=entry,
            stop_loss=stop,
            target=target,
            quantity=quantity,
            date=data.get("date") or date.today().isoformat(),
            notes=data.get("notes", ""),
        )
        return jsonify({"trade": trade.to_dict(), "warnings": warnings}), 201

    @app.route("/trades/<trade_id>/close", methods=["POST"])
    def close_trade(trade_id):
        exit_price = _required_number(payload(), "exit_price")
        trade = journal.close_trade(trade_id, exit_price)
        return jsonify({"trade": trade.to_dict(), "portfolio": journal.portfolio.to_dict()})

    @app.route("/trades/<trade_id>", methods=["PATCH"])
    def edit_trade(trade_id):
        data = payload()
        if "instrument" in data and not str(data["instrument"]).strip():
            raise ValueError("instrument is required")
        return jsonify(journal.update_trade(trade_id, **data).to_dict())

    @app.route("/trades/<trade_id>", methods=["DELETE"])
    def delete_trade(trade_id):
        journal.delete_trade(trade_id)
        return "", 204

    @app.route("/export", methods=["GET"], endpoint="export")
    def export_trades():
        filename = f"trade_journal_{date.today().isoformat()}.csv"
        return Response(
            trades_to_csv(journal.trades),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    # ---------- analytics ----------
    @app.route("/metrics")
    def metrics():
        return jsonify(_metrics_dict(journal.metrics))

    @app.route("/analytics/equity")
    def equity():
        return jsonify(analytics.equity_curve(journal.trades, journal.portfolio.capital))

    @app.route("/analytics/pnl/<period>")
    def pnl(period):
        df = analytics.pnl_by_period(journal.trades, period)
        return jsonify(df.to_dict(orient="records"))

    # ---------- portfolio / limits ----------
    @app.route("/portfolio", methods=["POST"])
    def update_portfolio():
        data = payload()
        updates = {k: _number(data, k) for k in PORTFOLIO_FIELDS if k in data}
        if updates.get("capital", 1.0) <= 0:
            raise ValueError("capital must be greater than 0")
        if updates.get("leverage", 1.0) < 1:
            raise ValueError("leverage must be at least 1")
        return jsonify(journal.update_portfolio(**updates).to_dict())

    @app.route("/portfolio/lock", methods=["POST"])
    def lock():
        reason = str(payload().get("reason", "Manual lock"))
        return jsonify(journal.lock_trading(reason).to_dict())

    @app.route("/portfolio/unlock", methods=["POST"])
    def unlock():
        return jsonify(journal.unlock_trading().to_dict())

    @app.route("/portfolio/reset-daily", methods=["POST"])
    def reset_daily():
        return jsonify(journal.reset_daily_pnl().to_dict())

    @app.route("/portfolio/reset-drawdown", methods=["POST"])
    def reset_drawdown():
        return jsonify(journal.reset_max_drawdown().to_dict())

    @app.route("/portfolio/leverage")
    def leverage():
        return jsonify(leverage_table(journal.portfolio.capital))

    @app.route("/risk-limits", methods=["GET", "POST"])
    def risk_limits():
        if request.method == "POST":
            data = payload()
            updates = {k: _number(data, k) for k in RISK_LIMIT_FIELDS if k in data}
            if any(v <= 0 for v in updates.values()):
                raise ValueError("risk limits must be greater than 0")
            journal.update_risk_limits(**updates)
        return jsonify(journal.risk_limits.to_dict())

    @app.route("/session/start", methods=["POST"])
    def start_session():
        return jsonify(journal.start_session().to_dict())

    @app.route("/session/end", methods=["POST"])
    def end_session():
        return jsonify(journal.end_session().to_dict())

    # ---------- calculators ----------
    @app.route("/calc/position-size", methods=["POST"])
    def position_size():
        d = payload()
        result = risk.calculate_position_size(
            _number(d, "capital", journal.portfolio.capital),
            _number(d, "risk_percent", journal.risk_limits.risk_per_trade),
            _number(d, "stop_loss_percent"),
            _number(d, "entry_price"),
            _number(d, "leverage", journal.portfolio.leverage) or 1.0,
        )
        return jsonify(result.to_dict())

    @app.route("/calc/validate", methods=["POST"])
    def validate():
        d = payload()
        entry, stop, target = _number(d, "entry_price"), _number(d, "stop_loss"), _number(d, "target")
        quantity = _number(d, "quantity")
        rr = risk.risk_reward_from_levels(entry, stop, target)
        risk_pct = risk.trade_risk_percent(entry, stop, quantity, journal.portfolio.capital)
        result = risk.validate_trade(rr, risk_pct, journal.risk_limits, journal.portfolio)
        out = result.to_dict()
        out.update({
            "risk_reward": rr,
            "risk_percent": risk_pct,
            "risk_amount": abs(entry - stop) * quantity,
            "potential_profit": abs(target - entry) * quantity,
        })
        return jsonify(out)

    @app.route("/calc/kelly", methods=["POST"])
    def kelly():
        d = payload()
        m = journal.metrics
        half = risk.calculate_kelly_criterion(
            _number(d, "win_rate", m.win_rate),
            _number(d, "avg_win", m.avg_win),
            _number(d, "avg_loss", m.avg_loss),
        )
        return jsonify({"half_kelly": half, "full_kelly": half * 2})

    @app.route("/calc/margin", methods=["POST"])
    def margin():
        d = payload()
        instrument_type = str(d.get("instrument_type", "FUTURES")).upper()
        if instrument_type not in ("FUTURES", "OPTIONS_BUY", "OPTIONS_SELL"):
            raise ValueError("instrument_type must be FUTURES, OPTIONS_BUY or OPTIONS_SELL")
        result = risk.calculate_margin_requirements(
            _number(d, "instrument_price"),
            _number(d, "quantity"),
            instrument_type,
            _number(d, "option_premium"),
            _number(d, "lot_size", 1.0) or 1.0,
        )
        return jsonify(result.to_dict())

    @app.route("/calc/compounding", methods=["POST"])
    def compounding():
        d = payload()
        months = int(_number(d, "months", 12))
        rows = planning.calculate_compounding(
            _number(d, "start_capital", journal.portfolio.capital),
            _number(d, "monthly_return_percent"),
            max(months, 0),
        )
        return jsonify([r.to_dict() for r in rows])

    @app.route("/calc/growth-plan", methods=["POST"])
    def growth_plan():
        d = payload()
        current = _number(d, "current_capital", journal.portfolio.capital)
        target = _number(d, "target_capital")
        months = int(_number(d, "months", 1)) or 1
        required = planning.calculate_required_monthly_return(current, target, months)
        return jsonify({
            "required_monthly_return": required,
            "difficulty": planning.growth_difficulty(required),
            "milestones": planning.growth_milestones(current, target, months),
            "projection": [r.to_dict() for r in planning.calculate_compounding(current, required, months)],
        })

    @app.route("/calc/drawdown", methods=["POST"])
    def drawdown():
        d = payload()
        p = journal.portfolio
        dd = _number(d, "drawdown", p.drawdown)
        base = _number(d, "base_risk", journal.risk_limits.risk_per_trade)
        return jsonify({
            "drawdown": dd,
            "level": risk.drawdown_level(dd),
            "adjusted_risk": risk.get_adjusted_risk_for_drawdown(base, dd),
            "trades_to_recover": planning.trades_to_recover(
                p.current_equity, p.peak_equity, p.capital, journal.risk_limits.risk_per_trade
            ),
            "days_to_recover": planning.days_to_recover(p.current_equity, p.peak_equity),
        })

    log.info("Risk desk ready (db=%s)", db.db_path)
    return app


# Run directly
if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5004, debug=True, use_reloader=False)
