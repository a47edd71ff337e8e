import threading

import pytest

from riskdesk.journal import TradeNotFound, TradeNotOpen, TradeRejected, TradingJournal
from riskdesk.models import CANCELLED, CLOSED, OPEN

from conftest import make_trade


def add_long(journal, **overrides):
    fields = dict(instrument=" nifty ", side="long", entry_price=100.0, stop_loss=99.5, target=102.0, quantity=10)
    fields.update(overrides)
    return journal.add_trade(**fields)


def test_add_trade_records_open_trade(journal, db):
    trade, warnings = add_long(journal, date="2024-02-01", notes="pullback")
    assert warnings == []
    assert trade.status == OPEN
    assert trade.instrument == "NIFTY"
    assert trade.side == "LONG"
    assert trade.risk_reward == pytest.approx(4)
    assert trade.id.startswith("TRD-")
    assert db.list_trades() == [trade]
    assert journal.session.trades_count == 1


def test_add_trade_rejects_low_risk_reward(journal, db):
    with pytest.raises(TradeRejected) as exc:
        add_long(journal, target=100.5)
    assert exc.value.errors == ["Risk-Reward ratio 1.00 is below minimum 1:2"]
    assert "below minimum" in str(exc.value)
    assert db.list_trades() == []


def test_add_trade_rejects_wide_stop(journal):
    # a 5% stop is checked against the 1% per-trade limit
    with pytest.raises(TradeRejected) as exc:
        add_long(journal, stop_loss=95.0, target=120.0)
    assert exc.value.errors == ["Risk 5% exceeds limit of 1%"]


def test_add_trade_returns_drawdown_warning(journal):
    journal.update_portfolio(current_equity=88000)
    _, warnings = add_long(journal)
    assert warnings == ["Current drawdown 12.00% is elevated"]


def test_close_trade_updates_portfolio_and_metrics(journal, db):
    trade, _ = add_long(journal)
    closed = journal.close_trade(trade.id, 102.0)

    assert closed.status == CLOSED
    assert closed.pnl == pytest.approx(20)
    assert journal.portfolio.current_equity == pytest.approx(100020)
    assert journal.portfolio.daily_pnl == pytest.approx(20)
    assert journal.metrics.total_trades == 1
    assert journal.metrics.streak_type == "WIN"
    assert db.load_portfolio() == journal.portfolio
    assert db.list_trades()[0].status == CLOSED


def test_unknown_trade(journal):
    with pytest.raises(TradeNotFound):
        journal.close_trade("TRD-missing", 1.0)
    with pytest.raises(TradeNotFound):
        journal.delete_trade("TRD-missing")


def test_three_losses_lock_and_block_new_trades(journal):
    for _ in range(3):
        trade, _ = add_long(journal)
        journal.close_trade(trade.id, 99.5)

    assert journal.portfolio.is_trading_locked
    with pytest.raises(TradeRejected) as exc:
        add_long(journal)
    assert exc.value.errors == ["Trading is locked: 3 consecutive losses - mandatory cooldown"]

    journal.unlock_trading()
    assert journal.session.consecutive_losses == 0
    add_long(journal)


def test_update_and_delete_trade(journal):
    trade, _ = add_long(journal)
    updated = journal.update_trade(trade.id, notes="moved stop", instrument=" banknifty")
    assert journal.get_trade(trade.id).notes == "moved stop"
    assert updated.instrument == "BANKNIFTY"
    assert updated.risk_reward == trade.risk_reward
    journal.delete_trade(trade.id)
    assert journal.trades == []


def test_state_survives_reload(journal, db):
    journal.update_risk_limits(risk_per_trade=2.0)
    journal.lock_trading("manual")

    reloaded = TradingJournal(db)
    assert reloaded.risk_limits.risk_per_trade == 2.0
    assert reloaded.portfolio.is_trading_locked
    assert reloaded.portfolio.lock_reason == "manual"


def test_reset_daily_pnl_and_drawdown(journal):
    journal.update_portfolio(current_equity=90000, daily_pnl=-10000)
    journal.update_portfolio(current_equity=95000)
    assert journal.reset_daily_pnl().daily_pnl == 0
    assert journal.portfolio.max_drawdown == pytest.approx(10)
    assert journal.reset_max_drawdown().max_drawdown == pytest.approx(5)


def test_session_start_and_end(journal):
    assert journal.start_session().is_active
    assert journal.session.trades_count == 0
    assert not journal.end_session().is_active


def test_concurrent_closes_book_every_pnl(journal):
    journal.update_risk_limits(risk_per_trade=100.0)
    trades = [add_long(journal)[0] for _ in range(20)]

    threads = [threading.Thread(target=journal.close_trade, args=(t.id, 101.0)) for t in trades]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert all(t.status == CLOSED for t in journal.trades)
    assert journal.portfolio.current_equity == pytest.approx(100000 + 20 * 10)
    assert journal.portfolio.daily_pnl == pytest.approx(200)


def test_closing_twice_books_pnl_once(journal):
    trade, _ = add_long(journal)
    journal.close_trade(trade.id, 102.0)

    with pytest.raises(TradeNotOpen) as exc:
        journal.close_trade(trade.id, 102.0)
    assert exc.value.status == CLOSED
    assert journal.portfolio.current_equity == pytest.approx(100020)
    assert journal.portfolio.daily_pnl == pytest.approx(20)
    assert journal.portfolio.weekly_pnl == pytest.approx(20)
    assert journal.portfolio.monthly_pnl == pytest.approx(20)


def test_cancelled_trade_cannot_be_closed(db):
    trade = make_trade(trade_id="TRD-c", status=CANCELLED)
    db.save_trades([trade])
    reloaded = TradingJournal(db)
    with pytest.raises(TradeNotOpen):
        reloaded.close_trade("TRD-c", 101.0)
    assert reloaded.portfolio.current_equity == 100000
    assert reloaded.session.consecutive_losses == 0


def test_repeat_close_of_a_loser_does_not_lock(journal):
    trade, _ = add_long(journal)
    journal.close_trade(trade.id, 99.5)
    for _ in range(3):
        with pytest.raises(TradeNotOpen):
            journal.close_trade(trade.id, 99.5)
    assert journal.session.consecutive_losses == 1
    assert not journal.portfolio.is_trading_locked


@pytest.mark.parametrize("field,value", [("status", CLOSED), ("pnl", 50.0), ("exit_price", 105.0), ("risk_reward", 9.0)])
def test_update_trade_refuses_fixed_fields(journal, field, value):
    trade, _ = add_long(journal)
    with pytest.raises(ValueError, match=field):
        journal.update_trade(trade.id, **{field: value})
    assert journal.get_trade(trade.id) == trade


def test_break_even_close_resets_loss_count(journal):
    # a zero-pnl close is a non-losing close and restarts the loss run
    for _ in range(2):
        trade, _ = add_long(journal)
        journal.close_trade(trade.id, 99.5)
    assert journal.session.consecutive_losses == 2

    trade, _ = add_long(journal)
    closed = journal.close_trade(trade.id, 100.0)
    assert closed.pnl == 0
    assert journal.session.consecutive_losses == 0
    assert journal.portfolio.current_equity == pytest.approx(99990)

    trade, _ = add_long(journal)
    journal.close_trade(trade.id, 99.5)
    assert journal.session.consecutive_losses == 1
    assert not journal.portfolio.is_trading_locked
