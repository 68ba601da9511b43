"""Property-based tests for the SQLite state store.

**Feature: quantpilot persistence**
"""

import sqlite3
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from quantpilot.db import PersistedState, SessionInfo, StateStore
from quantpilot.db.store import RISK_KEY, SAFETY_KEY
from quantpilot.models import (
    AccountMode,
    RiskConfiguration,
    SafetyState,
    Side,
    Trade,
    TradeOrigin,
    TradeStatus,
)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        yield StateStore(db_path)


def make_trade(trade_id: str, opened_at: datetime, closed: bool = False) -> Trade:
    trade = Trade(
        id=trade_id,
        pair="ETH/USDT",
        side=Side.SELL,
        entry_price=2680.0,
        amount=150.0,
        opened_at=opened_at,
        stop_loss=2733.6,
        take_profit=2546.0,
        stop_loss_pct=2.0,
        take_profit_pct=5.0,
        mode=AccountMode.LIVE,
        origin=TradeOrigin.AUTOPILOT,
    )
    if closed:
        trade = trade.model_copy(update={
            "status": TradeStatus.CLOSED,
            "exit_price": 2600.0,
            "pnl": 4.47,
            "closed_at": opened_at + timedelta(minutes=5),
        })
    return trade


class TestDatabaseSchemaCompleteness:
    """
    *For any* fresh database, all required tables (trades, balances,
    settings) should exist.
    """

    def test_schema_completeness(self, temp_db: StateStore):
        tables = temp_db.get_tables()
        for table in StateStore.REQUIRED_TABLES:
            assert table in tables, f"Required table '{table}' is missing"

    def test_fresh_database_loads_defaults(self, temp_db: StateStore):
        state = temp_db.load()
        assert state.trades == []
        assert state.balances == {}
        assert state.risk == RiskConfiguration()
        assert state.safety == SafetyState()
        assert state.session.mode is AccountMode.TRIAL


class TestStateRoundTrip:
    """
    *For any* saved state, loading it back yields equal trades, balances,
    risk configuration, safety state and session.
    """

    @given(
        trial=st.floats(min_value=0, max_value=1e7, allow_nan=False),
        live=st.floats(min_value=0, max_value=1e7, allow_nan=False),
        losses=st.integers(min_value=0, max_value=10),
        cumulative=st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
        autopilot=st.booleans(),
        stop_loss=st.floats(min_value=0.1, max_value=50),
    )
    @settings(max_examples=25)
    def test_round_trip(self, trial, live, losses, cumulative, autopilot, stop_loss):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = StateStore(Path(tmpdir) / "state.db")
            now = datetime.now()
            state = PersistedState(
                trades=[make_trade("B", now), make_trade("A", now - timedelta(hours=1), closed=True)],
                balances={AccountMode.TRIAL: trial, AccountMode.LIVE: live},
                risk=RiskConfiguration(stop_loss_pct=stop_loss),
                safety=SafetyState(
                    consecutive_losses=losses,
                    cumulative_pnl=cumulative,
                    autopilot_enabled=autopilot,
                    alert="SAFETY TRIGGERED" if losses >= 3 else None,
                ),
                session=SessionInfo(mode=AccountMode.LIVE, operator="desk-1"),
            )

            store.save(state)
            loaded = store.load()

            assert loaded == state

    def test_trade_update_replaces_row(self, temp_db: StateStore):
        now = datetime.now()
        temp_db.save_trade(make_trade("X1", now))
        temp_db.save_trade(make_trade("X1", now, closed=True))

        trades = temp_db.get_trades()
        assert len(trades) == 1
        assert trades[0].status is TradeStatus.CLOSED


class TestCorruptionRecovery:
    """Unreadable data yields defaults instead of crashing."""

    def test_corrupt_setting_falls_back(self, temp_db: StateStore):
        conn = sqlite3.connect(temp_db.db_path)
        conn.execute("INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (RISK_KEY, "{not json"))
        conn.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (SAFETY_KEY, '{"consecutive_losses": -4}'),
        )
        conn.commit()
        conn.close()

        state = temp_db.load()
        assert state.risk == RiskConfiguration()
        assert state.safety == SafetyState()

    def test_corrupt_trade_row_skipped(self, temp_db: StateStore):
        temp_db.save_trade(make_trade("GOOD", datetime.now()))
        conn = sqlite3.connect(temp_db.db_path)
        conn.execute(
            """
            INSERT INTO trades (id, pair, side, entry_price, amount, status, opened_at,
                                stop_loss, take_profit, stop_loss_pct, take_profit_pct, mode, origin)
            VALUES ('BAD', 'BTC/USDT', 'SIDEWAYS', 1, 1, 'OPEN', 'yesterday', 1, 1, 1, 1, 'TRIAL', 'MANUAL')
            """
        )
        conn.commit()
        conn.close()

        trades = temp_db.get_trades()
        assert [t.id for t in trades] == ["GOOD"]

    def test_garbage_file_is_replaced(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "state.db"
            db_path.write_bytes(b"this is definitely not a sqlite database" * 100)

            store = StateStore(db_path)

            assert set(StateStore.REQUIRED_TABLES) <= set(store.get_tables())
            assert store.load().trades == []
