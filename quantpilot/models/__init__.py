"""Data models for QuantPilot."""

from quantpilot.models.trade import AccountMode, Side, Trade, TradeOrigin, TradeStatus
from quantpilot.models.risk import RiskConfiguration, SafetyState
from quantpilot.models.insight import (
    AdvisoryResponse,
    AuditSummary,
    Insight,
    KeyLevels,
    PerformanceAudit,
    Provenance,
    TrendSignal,
)
from quantpilot.models.quote import Quote
from quantpilot.models.event import LogEntry

__all__ = [
    "AccountMode",
    "AdvisoryResponse",
    "AuditSummary",
    "Insight",
    "KeyLevels",
    "LogEntry",
    "PerformanceAudit",
    "Provenance",
    "Quote",
    "RiskConfiguration",
    "SafetyState",
    "Side",
    "Trade",
    "TradeOrigin",
    "TradeStatus",
    "TrendSignal",
]
