"""Periodic tasks driving market refresh, autopilot entries and settlement.

Each scheduler issues discrete ticks. A tick takes the session lock, so
ledger mutations from different schedulers and operator commands are
strictly serialized.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from quantpilot.indicators.trend import analyze_trend
from quantpilot.models import Side, Trade, TradeOrigin
from quantpilot.risk.sizing import safe_size

if TYPE_CHECKING:
    from quantpilot.engine.session import TradingSession

logger = logging.getLogger(__name__)


class PeriodicTask(ABC):
    """Base class for a cancellable fixed-period loop.

    Subclasses implement ``tick``. Exceptions raised by a tick are logged
    and the loop carries on with the next period.
    """

    name = "task"

    def __init__(self, session: "TradingSession", interval: float, immediate: bool = False):
        """Initialize the task.

        Args:
            session: Session owning the engine state.
            interval: Seconds between ticks.
            immediate: Tick once before the first sleep.
        """
        self.session = session
        self.interval = interval
        self.immediate = immediate

    def should_tick(self) -> bool:
        return True

    @abstractmethod
    async def tick(self):
        """Run one period of work."""
        pass

    async def run(self) -> None:
        """Tick every ``interval`` seconds until cancelled."""
        if not self.immediate:
            await asyncio.sleep(self.interval)
        while True:
            if self.should_tick():
                try:
                    await self.tick()
                except Exception:
                    logger.exception("%s tick failed", self.name)
            await asyncio.sleep(self.interval)


class MarketDataScheduler(PeriodicTask):
    """Polls the market feed (default every 8 s)."""

    name = "market-data"

    async def tick(self) -> None:
        await self.session.refresh_market()


class AutopilotScheduler(PeriodicTask):
    """Opens long positions on BUY signals while autopilot is enabled."""

    name = "autopilot"

    def should_tick(self) -> bool:
        return self.session.governor.autopilot_enabled

    async def tick(self) -> list[Trade]:
        """Run one autopilot decision round.

        Returns:
            Trades opened during this tick.
        """
        session = self.session
        async with session.lock:
            if session.closed or not session.governor.autopilot_enabled:
                return []
            opened = self._decide()
            if opened or not session.governor.autopilot_enabled:
                session.persist()
            return opened

    def _decide(self) -> list[Trade]:
        session = self.session
        settings = session.settings
        mode = session.mode
        risk = session.risk
        ledger = session.ledger

        gate = session.governor.check_gate(ledger.balance(mode), risk.max_drawdown_pct)
        if not gate.allowed:
            session.events.add(f"Safety kill switch: {gate.reason}", "warning")
            return []

        opened = []
        for pair in session.market.pairs:
            history = session.market.history(pair)
            if len(history) < settings.min_autopilot_history:
                continue
            if ledger.has_open_position(pair, mode):
                continue

            signal = analyze_trend(history)
            # Long-only: SELL signals never open positions here
            if signal.action != "BUY":
                continue

            price = session.market.price(pair)
            amount = safe_size(ledger.balance(mode), price, risk.risk_fraction, risk.advisory_max_position)
            if amount <= settings.min_notional:
                logger.debug("Skipping %s: size %.2f below minimum", pair, amount)
                continue

            trade = ledger.open(
                pair, Side.BUY, amount, price, risk, mode=mode, origin=TradeOrigin.AUTOPILOT
            )
            session.events.add(
                f"AUTOPILOT: opened LONG {pair} {amount:.2f} @ {price:,.2f} ({signal.reason})", "ai"
            )
            opened.append(trade)
        return opened


class SettlementScheduler(PeriodicTask):
    """Closes open trades that hit their stop-loss or take-profit."""

    name = "settlement"

    async def tick(self) -> list[Trade]:
        """Sweep every OPEN trade in both account modes.

        Returns:
            Trades closed during this tick.
        """
        session = self.session
        async with session.lock:
            if session.closed:
                return []
            closed = self._sweep()
            if closed:
                session.persist()
            return closed

    def _latest_price(self, trade: Trade) -> float:
        if trade.pair in self.session.market.pairs:
            return self.session.market.price(trade.pair)
        return trade.entry_price

    def _sweep(self) -> list[Trade]:
        session = self.session
        closed = []
        for trade in session.ledger.open_trades():
            price = self._latest_price(trade)
            # Thresholds captured when the trade was opened
            if trade.exit_triggered(price):
                settled = session.ledger.settle(trade.id, price)
                if settled is None:
                    continue
                sign = "+" if settled.pnl >= 0 else ""
                session.events.add(
                    f"Trade closed: {settled.pair} | PnL: {sign}${settled.pnl:.2f}",
                    "success" if settled.pnl >= 0 else "warning",
                )
                closed.append(settled)
        return closed
