"""Insight, audit and signal data models."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Action = Literal["BUY", "SELL", "HOLD"]


class Provenance(str, Enum):
    """Where an insight or audit came from."""

    EXTERNAL = "EXTERNAL"
    FALLBACK = "FALLBACK"


class TrendSignal(BaseModel):
    """Output of the local trend analyzer."""

    action: Action = Field(..., description="Suggested action")
    confidence: int = Field(..., ge=0, le=100, description="Confidence score")
    reason: str = Field(..., description="Human-readable explanation")

    model_config = {"frozen": True}


class KeyLevels(BaseModel):
    """Support and resistance levels."""

    support: float = Field(..., ge=0)
    resistance: float = Field(..., ge=0)


class AdvisoryResponse(BaseModel):
    """Schema an external advisory response must satisfy."""

    pair: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0, le=100)
    action: Action
    reasoning: str = Field(..., min_length=1)
    keyLevels: KeyLevels

    @field_validator("action", mode="before")
    @classmethod
    def _upper_action(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


class Insight(BaseModel):
    """A trading recommendation for one pair."""

    pair: str = Field(..., min_length=1, description="Asset pair")
    confidence: float = Field(..., ge=0, le=100, description="Confidence (0-100)")
    action: Action = Field(..., description="Recommended action")
    reasoning: str = Field(..., description="Reasoning text")
    support: float = Field(..., ge=0, description="Support level")
    resistance: float = Field(..., ge=0, description="Resistance level")
    timestamp: datetime = Field(default_factory=datetime.now)
    provenance: Provenance = Field(..., description="EXTERNAL or FALLBACK")

    model_config = {"frozen": True}


class AuditSummary(BaseModel):
    """Schema an external performance summary must satisfy."""

    rating: str = Field(..., min_length=1, max_length=2)
    efficiencyScore: float = Field(..., ge=0, le=100)
    critique: str = Field(..., min_length=1)
    recommendedAdjustment: str = Field(..., min_length=1)


class PerformanceAudit(BaseModel):
    """Rating of realized trading performance."""

    rating: str = Field(..., description="Letter grade")
    efficiency_score: int = Field(..., ge=0, le=100, description="Efficiency score")
    critique: str = Field(..., description="Critique text")
    recommended_adjustment: str = Field(..., description="Suggested change")
    win_rate: float = Field(..., ge=0, le=100, description="Win rate over closed trades")
    net_pnl: float = Field(..., description="Net realized P&L")
    provenance: Provenance = Field(..., description="EXTERNAL or FALLBACK")

    model_config = {"frozen": True}
