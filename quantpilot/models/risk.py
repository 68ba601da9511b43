"""Risk configuration and safety state models."""

from typing import Optional

from pydantic import BaseModel, Field


class RiskConfiguration(BaseModel):
    """Risk parameters applied to new trades and autopilot sizing.

    Snapshotted into every trade at open time; later changes never
    affect trades that are already open.
    """

    stop_loss_pct: float = Field(default=2.0, gt=0, lt=100, description="Stop-loss %")
    take_profit_pct: float = Field(default=5.0, gt=0, description="Take-profit %")
    max_drawdown_pct: float = Field(
        default=15.0, gt=0, le=100, description="Max drawdown % before kill switch"
    )
    advisory_risk_pct: float = Field(
        default=2.0, gt=0, le=100, description="Share of balance risked per autopilot entry"
    )
    advisory_max_position: float = Field(
        default=50.0, gt=0, description="Notional cap per autopilot entry"
    )

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def risk_fraction(self) -> float:
        return self.advisory_risk_pct / 100


class SafetyState(BaseModel):
    """Kill-switch counters for autonomous trading."""

    consecutive_losses: int = Field(default=0, ge=0, description="Losing settlements in a row")
    cumulative_pnl: float = Field(default=0.0, description="Realized P&L since session start")
    autopilot_enabled: bool = Field(default=False, description="Autopilot switch")
    alert: Optional[str] = Field(default=None, description="Active safety alert")
