"""Trade data model."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

# Percentage points of slack when comparing P&L against exit thresholds
EXIT_TOLERANCE = 1e-9


class Side(str, Enum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"

    @property
    def sign(self) -> int:
        """+1 for longs, -1 for shorts."""
        return 1 if self is Side.BUY else -1


class TradeStatus(str, Enum):
    """Trade lifecycle state. CLOSED is terminal."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class AccountMode(str, Enum):
    """Account a trade is booked against."""

    TRIAL = "TRIAL"
    LIVE = "LIVE"


class TradeOrigin(str, Enum):
    """Who initiated a trade."""

    MANUAL = "MANUAL"
    AUTOPILOT = "AUTOPILOT"


class Trade(BaseModel):
    """Represents a simulated position from open to settlement."""

    id: str = Field(..., min_length=1, description="Trade identifier")
    pair: str = Field(..., min_length=1, description="Asset pair (e.g., BTC/USDT)")
    side: Side = Field(..., description="Trade side (BUY/SELL)")
    entry_price: float = Field(..., gt=0, description="Entry price")
    exit_price: Optional[float] = Field(default=None, gt=0, description="Exit price")
    amount: float = Field(..., gt=0, description="Notional amount")
    status: TradeStatus = Field(default=TradeStatus.OPEN, description="Lifecycle state")
    pnl: Optional[float] = Field(default=None, description="Realized P&L")
    opened_at: datetime = Field(default_factory=datetime.now, description="Open timestamp")
    closed_at: Optional[datetime] = Field(default=None, description="Close timestamp")
    stop_loss: float = Field(..., gt=0, description="Stop-loss price")
    take_profit: float = Field(..., gt=0, description="Take-profit price")
    stop_loss_pct: float = Field(..., gt=0, description="Stop-loss % captured at open")
    take_profit_pct: float = Field(..., gt=0, description="Take-profit % captured at open")
    mode: AccountMode = Field(default=AccountMode.TRIAL, description="Account mode")
    origin: TradeOrigin = Field(default=TradeOrigin.MANUAL, description="Initiator")

    model_config = {"frozen": True}

    @property
    def is_open(self) -> bool:
        return self.status is TradeStatus.OPEN

    def pnl_percent_at(self, price: float) -> float:
        """Unrealized P&L percentage if the trade were closed at ``price``."""
        return self.side.sign * (price - self.entry_price) / self.entry_price * 100

    def exit_triggered(self, price: float) -> bool:
        """True when ``price`` reaches the stop-loss or take-profit captured at open.

        Both bounds are inclusive. A quote exactly at a protective level can
        land a rounding error short of the threshold, so comparisons allow
        EXIT_TOLERANCE percentage points.
        """
        pnl_percent = self.pnl_percent_at(price)
        return (
            pnl_percent <= -self.stop_loss_pct + EXIT_TOLERANCE
            or pnl_percent >= self.take_profit_pct - EXIT_TOLERANCE
        )
