"""Decision-and-lifecycle engine for QuantPilot."""

from quantpilot.engine.events import EventLog
from quantpilot.engine.ledger import DEFAULT_BALANCES, TradeLedger
from quantpilot.engine.schedulers import (
    AutopilotScheduler,
    MarketDataScheduler,
    PeriodicTask,
    SettlementScheduler,
)
from quantpilot.engine.session import TradingSession

__all__ = [
    "AutopilotScheduler",
    "DEFAULT_BALANCES",
    "EventLog",
    "MarketDataScheduler",
    "PeriodicTask",
    "SettlementScheduler",
    "TradeLedger",
    "TradingSession",
]
