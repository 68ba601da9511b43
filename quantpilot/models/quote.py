"""Quote data model."""

from datetime import datetime
from pydantic import BaseModel, Field


class Quote(BaseModel):
    """Represents the latest market quote for a pair."""

    pair: str = Field(..., min_length=1, description="Asset pair")
    price: float = Field(..., gt=0, description="Last traded price")
    change_percent: float = Field(default=0.0, description="24h percentage change")
    timestamp: datetime = Field(default_factory=datetime.now, description="Quote timestamp")
    synthetic: bool = Field(default=False, description="Generated by the fallback walk")

    model_config = {"frozen": True}

    @property
    def change_label(self) -> str:
        """24h change formatted as a signed percentage string."""
        sign = "+" if self.change_percent > 0 else ""
        return f"{sign}{self.change_percent:.2f}%"
