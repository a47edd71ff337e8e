import re

from riskdesk.database import CSV_HEADERS, TradeJournalDB, generate_trade_id, trades_to_csv
from riskdesk.models import RiskLimits, SessionState
from riskdesk.portfolio import default_portfolio, recompute_portfolio
from riskdesk.risk import DEFAULT_RISK_LIMITS

from conftest import make_trade


def test_defaults_when_empty(db):
    assert db.list_trades() == []
    assert db.load_risk_limits() == DEFAULT_RISK_LIMITS
    portfolio = db.load_portfolio()
    assert portfolio.capital == 100000
    assert portfolio.effective_capital == 100000
    assert db.load_session().consecutive_losses == 0


def test_trades_round_trip_in_order(db):
    trades = [make_trade(trade_id="B"), make_trade(pnl=-25.5, trade_id="A", notes="late entry")]
    db.save_trades(trades)
    assert db.list_trades() == trades

    db.save_trades(trades[1:])
    assert [t.id for t in db.list_trades()] == ["A"]


def test_state_records_persist(tmp_path):
    path = str(tmp_path / "journal.db")
    store = TradeJournalDB(path)
    limits = RiskLimits(risk_per_trade=0.5, daily_loss_limit=2, weekly_loss_limit=4, monthly_loss_limit=8)
    portfolio = recompute_portfolio(default_portfolio(200000), current_equity=180000, is_trading_locked=True, lock_reason="x")
    session = SessionState(is_active=True, trades_count=4, consecutive_losses=1)
    store.save_risk_limits(limits)
    store.save_portfolio(portfolio)
    store.save_session(session)
    store.close()

    reopened = TradeJournalDB(path)
    assert reopened.load_risk_limits() == limits
    assert reopened.load_portfolio() == portfolio
    assert reopened.load_session() == session
    reopened.close()


def test_generate_trade_id():
    trade_id = generate_trade_id()
    assert re.fullmatch(r"TRD-\d{13}-[0-9a-z]{9}", trade_id)
    assert generate_trade_id() != trade_id


def test_csv_export():
    trades = [
        make_trade(trade_id="A", date="2024-05-01", risk_reward=2.3333, notes="breakout"),
        make_trade(
            trade_id="B", date="2024-05-02", pnl=-52.5, exit_price=94.75,
            entry_price=100.0, stop_loss=95.5, target=112.25, risk_reward=2.5,
        ),
    ]
    lines = trades_to_csv(trades).split("\n")
    assert lines[0] == ",".join(CSV_HEADERS)
    assert lines[0] == "Date,Instrument,Side,Entry,StopLoss,Target,Qty,Exit,P&L,RR,Status,Notes"
    assert lines[1] == "2024-05-01,NIFTY,LONG,100,95,110,10,,,2.33,OPEN,breakout"
    assert lines[2] == "2024-05-02,NIFTY,LONG,100,95.5,112.25,10,94.75,-52.5,2.50,CLOSED,"
    assert len(lines) == 3


def test_csv_export_quotes_commas_in_notes():
    out = trades_to_csv([make_trade(notes="gap up, faded")])
    assert out.split("\n")[1].endswith('"gap up, faded"')
