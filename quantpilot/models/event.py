"""LogEntry data model."""

from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field


class LogEntry(BaseModel):
    """Represents one entry of the engine event stream."""

    timestamp: datetime = Field(default_factory=datetime.now, description="Event time")
    message: str = Field(..., description="Event message")
    level: Literal["info", "success", "warning", "ai"] = Field(
        default="info", description="Display category"
    )

    model_config = {"frozen": True}
