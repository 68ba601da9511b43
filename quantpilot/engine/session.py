"""Trading session: the single owner of all mutable engine state.

The presentation layer (CLI) talks to the engine only through a
TradingSession. All mutations run under one asyncio lock and are
persisted immediately afterwards.
"""

import asyncio
import logging
from typing import Any, Optional

from quantpilot.agents.pipeline import DEFAULT_TIMEOUT, audit_performance, generate_insight
from quantpilot.config import EngineSettings
from quantpilot.db.store import PersistedState, SessionInfo, StateStore
from quantpilot.engine.events import EventLog
from quantpilot.engine.ledger import TradeLedger
from quantpilot.engine.schedulers import (
    AutopilotScheduler,
    MarketDataScheduler,
    PeriodicTask,
    SettlementScheduler,
)
from quantpilot.feeds.market import MarketData
from quantpilot.models import (
    AccountMode,
    Insight,
    LogEntry,
    PerformanceAudit,
    Quote,
    RiskConfiguration,
    SafetyState,
    Side,
    Trade,
    TradeOrigin,
)
from quantpilot.risk.governor import RiskGovernor

logger = logging.getLogger(__name__)


class TradingSession:
    """Owns the ledger, governor, market data and risk configuration.

    Commands: ``open_trade``, ``close_trade``, ``toggle_autopilot``,
    ``update_risk_configuration``, ``dismiss_alert``, ``set_mode``.
    Queries: ``balance``, ``trades``, ``quotes``, ``events``, ``alert``.
    """

    def __init__(
        self,
        store: StateStore,
        market: MarketData,
        advisor: Optional[Any] = None,
        settings: Optional[EngineSettings] = None,
        advisor_timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize the session from persisted state.

        Args:
            store: Persistence backend.
            market: Market data for the tracked pairs.
            advisor: Optional external advisory service.
            settings: Engine cadence and thresholds.
            advisor_timeout: Seconds the advisor is given per request.
        """
        self.store = store
        self.market = market
        self.advisor = advisor
        self.settings = settings or EngineSettings()
        self.advisor_timeout = advisor_timeout

        state = store.load()
        self.governor = RiskGovernor(state.safety)
        self.ledger = TradeLedger(self.governor, state.trades, state.balances)
        self.risk = state.risk
        self._session_info = state.session
        self.events = EventLog()
        self.lock = asyncio.Lock()

        self._tasks: list[asyncio.Task] = []
        self.closed = False

    # ==================== Lifecycle ====================

    def _schedulers(self) -> list[PeriodicTask]:
        return [
            MarketDataScheduler(self, self.settings.feed_interval, immediate=True),
            AutopilotScheduler(self, self.settings.autopilot_interval),
            SettlementScheduler(self, self.settings.settlement_interval),
        ]

    def start(self) -> None:
        """Start all periodic tasks on the running event loop."""
        if self._tasks:
            return
        self.closed = False
        self._tasks = [
            asyncio.create_task(task.run(), name=f"quantpilot-{task.name}")
            for task in self._schedulers()
        ]
        self.events.add(f"Engine started in {self.mode.value} mode")

    async def stop(self) -> None:
        """Cancel every periodic task and wait for them to finish."""
        async with self.lock:
            self.closed = True
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.events.add("Engine stopped")

    @property
    def running(self) -> bool:
        return bool(self._tasks) and not self.closed

    def persist(self) -> None:
        """Write the current state to the store. Call with the lock held."""
        self.store.save(PersistedState(
            trades=self.ledger.all_trades(),
            balances=self.ledger.balances,
            risk=self.risk,
            safety=self.governor.state,
            session=self._session_info,
        ))

    # ==================== Queries ====================

    @property
    def mode(self) -> AccountMode:
        return self._session_info.mode

    @property
    def alert(self) -> Optional[str]:
        return self.governor.alert

    @property
    def safety(self) -> SafetyState:
        return self.governor.state

    def balance(self, mode: Optional[AccountMode] = None) -> float:
        return self.ledger.balance(mode or self.mode)

    def trades(self, mode: Optional[AccountMode] = None) -> list[Trade]:
        """Trades of the current (or given) mode, newest first."""
        return self.ledger.history(mode or self.mode)

    def quotes(self) -> dict[str, Quote]:
        return self.market.quotes()

    def events_log(self) -> list[LogEntry]:
        return self.events.entries()

    # ==================== Commands ====================

    async def refresh_market(self) -> dict[str, Quote]:
        """Poll the feed off the event loop and record the quotes."""
        quotes = await asyncio.to_thread(self.market.poll)
        async with self.lock:
            if not self.closed:
                self.market.apply(quotes)
        return quotes

    async def open_trade(
        self,
        pair: str,
        side: Side,
        amount: float,
        price: Optional[float] = None,
    ) -> Trade:
        """Open a manual trade in the current mode.

        Args:
            pair: Tracked asset pair.
            side: BUY or SELL.
            amount: Notional to commit (bounded by the mode's balance).
            price: Entry price; defaults to the latest quote.

        Returns:
            The new OPEN trade.

        Raises:
            UnknownPairError: If the pair is not tracked and no price is given.
            InvalidOrderError: If amount or price is not positive.
            InsufficientBalanceError: If amount exceeds the balance.
        """
        async with self.lock:
            entry = price if price is not None else self.market.price(pair)
            trade = self.ledger.open(
                pair, Side(side), amount, entry, self.risk, mode=self.mode, origin=TradeOrigin.MANUAL
            )
            self.events.add(f"Order executed: {trade.side.value} {pair} {amount:.2f} @ {entry:,.2f}", "success")
            self.persist()
            return trade

    async def close_trade(self, trade_id: str) -> Optional[Trade]:
        """Close a trade at the latest quote for its pair.

        Returns:
            The CLOSED trade, or None if the trade is unknown or already closed.
        """
        async with self.lock:
            trade = self.ledger.get(trade_id)
            if trade is None or not trade.is_open:
                return None
            price = self.market.price(trade.pair) if trade.pair in self.market.pairs else trade.entry_price
            closed = self.ledger.manual_close(trade_id, price)
            if closed is not None:
                sign = "+" if closed.pnl >= 0 else ""
                self.events.add(
                    f"Manual close: {closed.pair} | Final PnL: {sign}${closed.pnl:.2f}",
                    "success" if closed.pnl >= 0 else "warning",
                )
                self.persist()
            return closed

    async def toggle_autopilot(self, enabled: Optional[bool] = None) -> bool:
        """Switch autopilot on/off (flip when ``enabled`` is None).

        Returns:
            The new autopilot state.
        """
        async with self.lock:
            new_state = not self.governor.autopilot_enabled if enabled is None else enabled
            self.governor.set_autopilot(new_state)
            self.events.add(f"Autopilot {'ENABLED' if new_state else 'DISABLED'}", "ai")
            self.persist()
            return new_state

    async def update_risk_configuration(self, **changes: float) -> RiskConfiguration:
        """Replace the risk configuration for future trades.

        Trades already open keep the levels captured when they opened.

        Raises:
            pydantic.ValidationError: If a value is out of range.
        """
        async with self.lock:
            self.risk = RiskConfiguration.model_validate({**self.risk.model_dump(), **changes})
            if self.risk == RiskConfiguration():
                self.events.add("Risk protocol reset: factory defaults applied", "warning")
            else:
                self.events.add("Risk configuration updated")
            self.persist()
            return self.risk

    async def dismiss_alert(self) -> None:
        """Clear the safety alert and the consecutive-loss counter."""
        async with self.lock:
            self.governor.dismiss_alert()
            self.events.add("Safety alert dismissed; consecutive losses reset")
            self.persist()

    async def set_mode(self, mode: AccountMode) -> None:
        """Switch the active account mode."""
        async with self.lock:
            self._session_info = SessionInfo(
                mode=AccountMode(mode), operator=self._session_info.operator
            )
            self.events.add(f"Switched to {self.mode.value} mode")
            self.persist()

    # ==================== Decisions ====================

    async def insight(self, pair: str) -> Insight:
        """Recommendation for a tracked pair from the decision pipeline."""
        async with self.lock:
            quote = self.market.quote(pair)
            history = self.market.history(pair)
        result = await generate_insight(
            pair,
            current_price=quote.price,
            change_24h=quote.change_percent,
            history=history,
            advisor=self.advisor,
            timeout=self.advisor_timeout,
        )
        self.events.add(
            f"Insight {pair}: {result.action} ({result.confidence:.0f}%) [{result.provenance.value}]", "ai"
        )
        return result

    async def audit(self, mode: Optional[AccountMode] = None) -> PerformanceAudit:
        """Audit realized performance of the current (or given) mode."""
        async with self.lock:
            trades = self.trades(mode)
        return await audit_performance(trades, advisor=self.advisor, timeout=self.advisor_timeout)

    async def autopilot_tick(self) -> list[Trade]:
        return await AutopilotScheduler(self, self.settings.autopilot_interval).tick()

    async def settlement_tick(self) -> list[Trade]:
        return await SettlementScheduler(self, self.settings.settlement_interval).tick()
