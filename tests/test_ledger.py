"""Property-based tests for the trade ledger lifecycle."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from quantpilot.engine.ledger import DEFAULT_BALANCES, TradeLedger, protective_levels
from quantpilot.exceptions import InsufficientBalanceError, InvalidOrderError
from quantpilot.models import AccountMode, RiskConfiguration, Side, TradeOrigin, TradeStatus
from quantpilot.risk import RiskGovernor


@pytest.fixture
def governor():
    return RiskGovernor()


@pytest.fixture
def ledger(governor):
    return TradeLedger(governor, balances={AccountMode.TRIAL: 50000.0, AccountMode.LIVE: 2450.75})


class TestBalanceConservation:
    """
    *For any* open/settle sequence, a mode's balance equals its starting
    balance minus open notionals plus settled notional and P&L.
    """

    @given(
        orders=st.lists(
            st.tuples(
                st.sampled_from([Side.BUY, Side.SELL]),
                st.floats(min_value=1.0, max_value=500.0),
                st.floats(min_value=10.0, max_value=1000.0),
                st.floats(min_value=0.5, max_value=1.5),
            ),
            min_size=1,
            max_size=10,
        ),
        settle_mask=st.lists(st.booleans(), min_size=10, max_size=10),
    )
    @settings(max_examples=100)
    def test_balance_accounting(self, orders, settle_mask):
        ledger = TradeLedger(RiskGovernor())
        risk = RiskConfiguration()
        start = ledger.balance(AccountMode.TRIAL)

        expected = start
        for (side, amount, price, exit_ratio), settle in zip(orders, settle_mask):
            trade = ledger.open("BTC/USDT", side, amount, price, risk)
            expected -= amount
            if settle:
                closed = ledger.settle(trade.id, price * exit_ratio)
                expected += amount + closed.pnl

        assert ledger.balance(AccountMode.TRIAL) == pytest.approx(expected)
        assert ledger.balance(AccountMode.LIVE) == DEFAULT_BALANCES[AccountMode.LIVE]

    def test_losing_long_settlement(self, ledger, governor):
        trade = ledger.open("BTC/USDT", Side.BUY, 1000.0, 50000.0, RiskConfiguration())
        assert ledger.balance(AccountMode.TRIAL) == pytest.approx(49000.0)

        closed = ledger.settle(trade.id, 49000.0)

        assert closed.status is TradeStatus.CLOSED
        assert closed.exit_price == 49000.0
        assert closed.pnl == pytest.approx(-20.0)
        assert closed.closed_at is not None
        assert ledger.balance(AccountMode.TRIAL) == pytest.approx(49980.0)
        assert governor.consecutive_losses == 1
        assert governor.cumulative_pnl == pytest.approx(-20.0)

    def test_winning_short_settlement(self, ledger):
        trade = ledger.open("ETH/USDT", Side.SELL, 200.0, 2000.0, RiskConfiguration())
        closed = ledger.settle(trade.id, 1900.0)
        assert closed.pnl == pytest.approx(10.0)


class TestSettleOnce:
    """
    *For any* trade, only the first settlement has an effect; unknown IDs
    are ignored.
    """

    def test_second_settle_is_noop(self, ledger, governor):
        trade = ledger.open("BTC/USDT", Side.BUY, 1000.0, 50000.0, RiskConfiguration())
        ledger.settle(trade.id, 49000.0)
        balance = ledger.balance(AccountMode.TRIAL)

        assert ledger.settle(trade.id, 60000.0) is None
        assert ledger.balance(AccountMode.TRIAL) == balance
        assert governor.consecutive_losses == 1
        assert ledger.get(trade.id).exit_price == 49000.0

    def test_unknown_trade_is_noop(self, ledger, governor):
        assert ledger.settle("NOPE", 100.0) is None
        assert ledger.balance(AccountMode.TRIAL) == 50000.0
        assert governor.cumulative_pnl == 0


class TestOpenValidation:
    """
    *For any* order with a non-positive amount or price, or an amount above
    the mode's balance, open is rejected and nothing changes.
    """

    @given(amount=st.floats(max_value=0.0, allow_nan=False, allow_infinity=False))
    @settings(max_examples=30)
    def test_non_positive_amount_rejected(self, amount: float):
        ledger = TradeLedger(RiskGovernor())
        with pytest.raises(InvalidOrderError):
            ledger.open("BTC/USDT", Side.BUY, amount, 100.0, RiskConfiguration())
        assert ledger.all_trades() == []

    def test_non_positive_price_rejected(self, ledger):
        with pytest.raises(InvalidOrderError):
            ledger.open("BTC/USDT", Side.BUY, 10.0, 0.0, RiskConfiguration())

    def test_insufficient_balance_rejected(self, ledger):
        with pytest.raises(InsufficientBalanceError) as exc:
            ledger.open("BTC/USDT", Side.BUY, 3000.0, 100.0, RiskConfiguration(), mode=AccountMode.LIVE)
        assert exc.value.available == pytest.approx(2450.75)
        assert ledger.balance(AccountMode.LIVE) == pytest.approx(2450.75)
        assert ledger.active_trades(AccountMode.LIVE) == []


class TestTradeSnapshot:
    """
    *For any* risk configuration, a new trade captures its stop-loss and
    take-profit on the correct side of the entry price.
    """

    @given(
        side=st.sampled_from([Side.BUY, Side.SELL]),
        price=st.floats(min_value=0.01, max_value=1e6),
        sl=st.floats(min_value=0.1, max_value=50.0),
        tp=st.floats(min_value=0.1, max_value=50.0),
    )
    @settings(max_examples=100)
    def test_levels_bracket_entry(self, side: Side, price: float, sl: float, tp: float):
        risk = RiskConfiguration(stop_loss_pct=sl, take_profit_pct=tp)
        stop_loss, take_profit = protective_levels(side, price, risk)
        if side is Side.BUY:
            assert stop_loss < price < take_profit
        else:
            assert take_profit < price < stop_loss

    def test_trade_records_origin_mode_and_percentages(self, ledger):
        risk = RiskConfiguration(stop_loss_pct=1.5, take_profit_pct=4.0)
        trade = ledger.open(
            "SOL/USDT", Side.BUY, 100.0, 200.0, risk, mode=AccountMode.LIVE, origin=TradeOrigin.AUTOPILOT
        )
        assert trade.status is TradeStatus.OPEN
        assert trade.mode is AccountMode.LIVE
        assert trade.origin is TradeOrigin.AUTOPILOT
        assert trade.stop_loss_pct == 1.5
        assert trade.take_profit_pct == 4.0
        assert trade.stop_loss == pytest.approx(197.0)
        assert trade.take_profit == pytest.approx(208.0)
        assert ledger.has_open_position("SOL/USDT", AccountMode.LIVE)
        assert not ledger.has_open_position("SOL/USDT", AccountMode.TRIAL)


class TestHistoryOrdering:
    """Trade history is newest first and filtered by mode."""

    def test_newest_first(self, ledger):
        risk = RiskConfiguration()
        first = ledger.open("BTC/USDT", Side.BUY, 10.0, 100.0, risk)
        second = ledger.open("ETH/USDT", Side.BUY, 10.0, 100.0, risk)
        live = ledger.open("SOL/USDT", Side.BUY, 10.0, 100.0, risk, mode=AccountMode.LIVE)

        assert [t.id for t in ledger.history(AccountMode.TRIAL)] == [second.id, first.id]
        assert [t.id for t in ledger.history(AccountMode.LIVE)] == [live.id]
        assert len(ledger.open_trades()) == 3


class TestExitTrigger:
    """
    *For any* trade, a quote exactly at its stop-loss or take-profit price
    triggers an exit, and a quote at entry does not.
    """

    @given(
        side=st.sampled_from([Side.BUY, Side.SELL]),
        price=st.floats(min_value=0.01, max_value=1e6),
        sl=st.floats(min_value=0.1, max_value=50.0),
        tp=st.floats(min_value=0.1, max_value=50.0),
    )
    @settings(max_examples=200)
    def test_protective_levels_trigger(self, side: Side, price: float, sl: float, tp: float):
        ledger = TradeLedger(RiskGovernor())
        risk = RiskConfiguration(stop_loss_pct=sl, take_profit_pct=tp)
        trade = ledger.open("SOL/USDT", side, 100.0, price, risk)

        assert trade.exit_triggered(trade.stop_loss)
        assert trade.exit_triggered(trade.take_profit)
        assert not trade.exit_triggered(trade.entry_price)

    def test_rounding_short_of_stop_still_triggers(self, ledger):
        trade = ledger.open("SOL/USDT", Side.BUY, 100.0, 198.5, RiskConfiguration())
        # 194.53 is exactly 2% below 198.5 but computes a hair above -2%
        assert trade.exit_triggered(194.53)
        assert not trade.exit_triggered(194.54)
