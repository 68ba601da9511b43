"""Risk governor with safety kill switches for autonomous trading."""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from quantpilot.models import SafetyState

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_LOSSES = 3

CONSECUTIVE_LOSS_ALERT = f"SAFETY TRIGGERED: max consecutive losses reached ({MAX_CONSECUTIVE_LOSSES})"
DRAWDOWN_ALERT = "SAFETY TRIGGERED: drawdown limit reached"


class GateDecision(BaseModel):
    """Result of the pre-entry safety gate."""

    allowed: bool = Field(..., description="Whether autonomous entries may proceed")
    reason: Optional[str] = Field(default=None, description="Alert raised when blocked")

    model_config = {"frozen": True}


class RiskGovernor:
    """Tracks realized losses and disables autopilot on breach.
    
    The governor owns the SafetyState. Settlements report into it, the
    autopilot consults ``check_gate`` before every entry decision, and the
    operator clears alerts through ``dismiss_alert``.
    """

    def __init__(self, state: Optional[SafetyState] = None):
        """Initialize the governor.
        
        Args:
            state: Previously persisted safety state, if any.
        """
        self._state = state or SafetyState()

    @property
    def state(self) -> SafetyState:
        return self._state.model_copy()

    @property
    def consecutive_losses(self) -> int:
        return self._state.consecutive_losses

    @property
    def cumulative_pnl(self) -> float:
        return self._state.cumulative_pnl

    @property
    def autopilot_enabled(self) -> bool:
        return self._state.autopilot_enabled

    @property
    def alert(self) -> Optional[str]:
        return self._state.alert

    def record_settlement(self, pnl_value: float) -> None:
        """Register the realized P&L of a settled trade.
        
        Args:
            pnl_value: Realized P&L (negative for a loss).
        """
        if pnl_value < 0:
            self._state.consecutive_losses += 1
        else:
            self._state.consecutive_losses = 0
        # No rollover: cumulative P&L spans the whole session
        self._state.cumulative_pnl += pnl_value
        logger.debug(
            "Settlement recorded pnl=%.2f losses=%d cumulative=%.2f",
            pnl_value,
            self._state.consecutive_losses,
            self._state.cumulative_pnl,
        )

    def drawdown_percent(self, balance: float) -> float:
        """Cumulative P&L as a percentage of ``balance``."""
        if balance <= 0:
            return float("-inf") if self._state.cumulative_pnl < 0 else 0.0
        return self._state.cumulative_pnl / balance * 100

    def check_gate(self, balance: float, max_drawdown_pct: float) -> GateDecision:
        """Decide whether an autonomous entry may be attempted.
        
        Disables autopilot and raises an alert on breach.
        
        Args:
            balance: Current balance of the active account mode.
            max_drawdown_pct: Drawdown limit in percent (positive).
            
        Returns:
            GateDecision describing the outcome.
        """
        if self._state.consecutive_losses >= MAX_CONSECUTIVE_LOSSES:
            return self._trip(CONSECUTIVE_LOSS_ALERT)
        
        if self.drawdown_percent(balance) <= -max_drawdown_pct:
            return self._trip(DRAWDOWN_ALERT)
        
        return GateDecision(allowed=True)

    def _trip(self, alert: str) -> GateDecision:
        self._state.autopilot_enabled = False
        self._state.alert = alert
        logger.warning("Kill switch: %s", alert)
        return GateDecision(allowed=False, reason=alert)

    def set_autopilot(self, enabled: bool) -> None:
        """Switch autopilot on or off."""
        self._state.autopilot_enabled = enabled

    def dismiss_alert(self) -> None:
        """Clear the active alert.
        
        Resets consecutive losses but keeps cumulative P&L.
        """
        self._state.alert = None
        self._state.consecutive_losses = 0
