"""Configuration loading for QuantPilot.

Settings live in ``~/.config/quantpilot/config.toml``. Every key is
optional; a missing or unreadable file yields the defaults.

    [engine]
    pairs = ["BTC/USDT", "ETH/USDT", "SOL/USDT"]
    feed_interval = 8
    autopilot_interval = 10
    settlement_interval = 5

    [advisor]
    enabled = true
    timeout = 6.5
    model = "gpt-5.2"

    [feed]
    proxy_prefix = ""
"""

import logging
from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, Field, ValidationError

from quantpilot.feeds.market import DEFAULT_PAIRS

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "quantpilot"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = CONFIG_DIR / "quantpilot.db"


class EngineSettings(BaseModel):
    """Scheduler cadence and autopilot thresholds."""

    pairs: list[str] = Field(default_factory=lambda: list(DEFAULT_PAIRS))
    feed_interval: float = Field(default=8.0, gt=0, description="Seconds between feed polls")
    autopilot_interval: float = Field(default=10.0, gt=0, description="Seconds between autopilot ticks")
    settlement_interval: float = Field(default=5.0, gt=0, description="Seconds between settlement sweeps")
    min_autopilot_history: int = Field(default=50, ge=20, description="Prices required before autopilot entries")
    min_notional: float = Field(default=10.0, ge=0, description="Smallest autopilot order notional")


class AdvisorSettings(BaseModel):
    """External advisory service options."""

    enabled: bool = Field(default=True)
    timeout: float = Field(default=6.5, gt=0, description="Seconds before falling back")
    model: Optional[str] = Field(default=None, description="Model override")


class FeedSettings(BaseModel):
    """Market data feed options."""

    proxy_prefix: str = Field(default="", description="URL prefix for a CORS-style proxy")
    timeout: float = Field(default=4.0, gt=0, description="HTTP timeout per request")


class Settings(BaseModel):
    """Top-level QuantPilot settings."""

    db_path: Path = Field(default=DEFAULT_DB_PATH)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    advisor: AdvisorSettings = Field(default_factory=AdvisorSettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from a TOML file.

    Args:
        config_path: Path to the config file. Defaults to DEFAULT_CONFIG_PATH.

    Returns:
        Settings, falling back to defaults on a missing or invalid file.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return Settings()

    try:
        data = toml.load(path)
        return Settings.model_validate(data)
    except (toml.TomlDecodeError, ValidationError, OSError) as e:
        logger.warning("Ignoring invalid config %s: %s", path, e)
        return Settings()
