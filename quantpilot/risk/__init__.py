"""Position sizing and risk governance for QuantPilot."""

from quantpilot.risk.sizing import safe_size
from quantpilot.risk.governor import GateDecision, RiskGovernor, MAX_CONSECUTIVE_LOSSES

__all__ = [
    "GateDecision",
    "MAX_CONSECUTIVE_LOSSES",
    "RiskGovernor",
    "safe_size",
]
