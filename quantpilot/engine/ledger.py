"""Trade ledger enforcing the open/settle lifecycle."""

import logging
import uuid
from datetime import datetime
from typing import Iterable, Optional

from quantpilot.exceptions import InsufficientBalanceError, InvalidOrderError
from quantpilot.models import (
    AccountMode,
    RiskConfiguration,
    Side,
    Trade,
    TradeOrigin,
    TradeStatus,
)
from quantpilot.risk.governor import RiskGovernor

logger = logging.getLogger(__name__)

DEFAULT_BALANCES = {
    AccountMode.TRIAL: 10000.00,
    AccountMode.LIVE: 2450.75,
}


def protective_levels(side: Side, price: float, risk: RiskConfiguration) -> tuple[float, float]:
    """Compute stop-loss and take-profit prices for a new trade.

    Args:
        side: Trade side.
        price: Entry price.
        risk: Risk configuration in effect at open time.

    Returns:
        Tuple of (stop_loss, take_profit) prices.
    """
    if side is Side.BUY:
        return (
            price * (1 - risk.stop_loss_pct / 100),
            price * (1 + risk.take_profit_pct / 100),
        )
    # Shorts lose when the price rises
    return (
        price * (1 + risk.stop_loss_pct / 100),
        max(price * (1 - risk.take_profit_pct / 100), 1e-9),
    )


class TradeLedger:
    """Owns trade records and per-mode balances.

    Trades move OPEN -> CLOSED exactly once. Balances are only changed
    by ``open`` (debit the notional) and ``settle`` (credit notional + P&L).
    Every settlement is reported to the RiskGovernor.
    """

    def __init__(
        self,
        governor: RiskGovernor,
        trades: Optional[Iterable[Trade]] = None,
        balances: Optional[dict[AccountMode, float]] = None,
    ):
        """Initialize the ledger.

        Args:
            governor: RiskGovernor notified of every settlement.
            trades: Previously persisted trades, newest first.
            balances: Previously persisted balances per mode.
        """
        self._governor = governor
        # Kept oldest first so ties on opened_at resolve by insertion order
        self._trades: dict[str, Trade] = {t.id: t for t in reversed(list(trades or []))}
        self._balances: dict[AccountMode, float] = dict(DEFAULT_BALANCES)
        if balances:
            self._balances.update(balances)

    # ==================== Queries ====================

    def balance(self, mode: AccountMode) -> float:
        """Current balance of an account mode."""
        return self._balances[mode]

    @property
    def balances(self) -> dict[AccountMode, float]:
        return dict(self._balances)

    def get(self, trade_id: str) -> Optional[Trade]:
        return self._trades.get(trade_id)

    def all_trades(self) -> list[Trade]:
        """Every trade across both modes, newest first."""
        return sorted(reversed(self._trades.values()), key=lambda t: t.opened_at, reverse=True)

    def history(self, mode: AccountMode) -> list[Trade]:
        """Every trade of one mode, newest first."""
        return [t for t in self.all_trades() if t.mode is mode]

    def active_trades(self, mode: AccountMode) -> list[Trade]:
        """OPEN trades of one mode."""
        return [t for t in self.history(mode) if t.is_open]

    def open_trades(self) -> list[Trade]:
        """OPEN trades across both modes, used by the settlement sweep."""
        return [t for t in self.all_trades() if t.is_open]

    def closed_trades(self, mode: Optional[AccountMode] = None) -> list[Trade]:
        trades = self.all_trades() if mode is None else self.history(mode)
        return [t for t in trades if t.status is TradeStatus.CLOSED]

    def has_open_position(self, pair: str, mode: AccountMode) -> bool:
        return any(t.pair == pair for t in self.active_trades(mode))

    # ==================== Transitions ====================

    def open(
        self,
        pair: str,
        side: Side,
        amount: float,
        price: float,
        risk_config: RiskConfiguration,
        mode: AccountMode = AccountMode.TRIAL,
        origin: TradeOrigin = TradeOrigin.MANUAL,
    ) -> Trade:
        """Open a new trade and debit its notional.

        Args:
            pair: Asset pair.
            side: BUY or SELL.
            amount: Notional to commit.
            price: Entry price.
            risk_config: Risk configuration snapshotted into the trade.
            mode: Account mode the trade is booked against.
            origin: Whether the operator or the autopilot opened it.

        Returns:
            The new OPEN trade.

        Raises:
            InvalidOrderError: If amount or price is not positive.
            InsufficientBalanceError: If amount exceeds the mode's balance.
        """
        side = Side(side)
        mode = AccountMode(mode)
        if amount <= 0:
            raise InvalidOrderError(f"Order amount must be positive, got {amount}")
        if price <= 0:
            raise InvalidOrderError(f"Entry price must be positive, got {price}")
        available = self._balances[mode]
        if amount > available:
            raise InsufficientBalanceError(required=amount, available=available)

        stop_loss, take_profit = protective_levels(side, price, risk_config)
        trade = Trade(
            id=uuid.uuid4().hex[:12].upper(),
            pair=pair,
            side=side,
            entry_price=price,
            amount=amount,
            opened_at=datetime.now(),
            stop_loss=stop_loss,
            take_profit=take_profit,
            stop_loss_pct=risk_config.stop_loss_pct,
            take_profit_pct=risk_config.take_profit_pct,
            mode=mode,
            origin=origin,
        )
        self._trades[trade.id] = trade
        self._balances[mode] = available - amount
        logger.info(
            "Opened %s %s %s notional=%.2f @ %.2f (%s)",
            trade.id, side.value, pair, amount, price, mode.value,
        )
        return trade

    def settle(self, trade_id: str, exit_price: float) -> Optional[Trade]:
        """Close an OPEN trade at ``exit_price``.

        Unknown or already CLOSED trades are left untouched: no balance
        change and no governor update.

        Args:
            trade_id: ID of the trade to close.
            exit_price: Price the trade is closed at.

        Returns:
            The CLOSED trade, or None if nothing was settled.
        """
        trade = self._trades.get(trade_id)
        if trade is None or not trade.is_open:
            return None
        if exit_price <= 0:
            raise InvalidOrderError(f"Exit price must be positive, got {exit_price}")

        pnl_percent = trade.pnl_percent_at(exit_price)
        pnl_value = trade.amount * pnl_percent / 100

        closed = trade.model_copy(update={
            "status": TradeStatus.CLOSED,
            "exit_price": exit_price,
            "pnl": pnl_value,
            "closed_at": datetime.now(),
        })
        self._trades[trade_id] = closed
        self._balances[trade.mode] += trade.amount + pnl_value
        self._governor.record_settlement(pnl_value)
        logger.info(
            "Closed %s %s pnl=%+.2f (%+.2f%%)",
            trade_id, trade.pair, pnl_value, pnl_percent,
        )
        return closed

    def manual_close(self, trade_id: str, latest_price: float) -> Optional[Trade]:
        """Operator-initiated close at the most recent known quote."""
        return self.settle(trade_id, latest_price)
