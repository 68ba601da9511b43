"""Market data feeds for QuantPilot."""

from quantpilot.feeds.base import BaseMarketFeed
from quantpilot.feeds.binance import BinanceFeed
from quantpilot.feeds.synthetic import SyntheticFeed
from quantpilot.feeds.market import DEFAULT_PAIRS, MarketData

__all__ = [
    "BaseMarketFeed",
    "BinanceFeed",
    "DEFAULT_PAIRS",
    "MarketData",
    "SyntheticFeed",
]
