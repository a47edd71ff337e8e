"""Shared pytest fixtures for the risk desk test suite."""

import pytest

from riskdesk.database import TradeJournalDB
from riskdesk.journal import TradingJournal
from riskdesk.models import CLOSED, LONG, OPEN, Trade


def make_trade(pnl=None, status=None, trade_id="T1", date="2024-01-01", **overrides):
    """Build a trade; passing ``pnl`` makes it CLOSED unless ``status`` says otherwise."""
    fields = dict(
        id=trade_id,
        date=date,
        instrument="NIFTY",
        side=LONG,
        entry_price=100.0,
        stop_loss=95.0,
        target=110.0,
        quantity=10,
        risk_reward=2.0,
        status=status or (CLOSED if pnl is not None else OPEN),
        pnl=pnl,
        exit_price=100.0 + pnl / 10 if pnl is not None else None,
    )
    fields.update(overrides)
    return Trade(**fields)


@pytest.fixture
def trade_factory():
    return make_trade


@pytest.fixture
def db():
    store = TradeJournalDB(":memory:")
    yield store
    store.close()


@pytest.fixture
def journal(db):
    return TradingJournal(db)
