"""Shared fixtures for engine tests."""

import random

import pytest

from quantpilot.config import EngineSettings
from quantpilot.db import StateStore
from quantpilot.engine import TradingSession
from quantpilot.exceptions import FeedError
from quantpilot.feeds import BaseMarketFeed, MarketData
from quantpilot.models import Quote


class OfflineFeed(BaseMarketFeed):
    """Feed that is always unreachable."""

    def poll(self, pairs):
        raise FeedError("offline")


def push_prices(market: MarketData, pair: str, prices: list[float]) -> None:
    """Append prices to a pair's history as if they came from the feed."""
    for price in prices:
        market.apply({pair: Quote(pair=pair, price=price)})


@pytest.fixture
def make_session(tmp_path):
    """Factory for sessions backed by a temporary database."""

    def factory(advisor=None, **engine_settings) -> TradingSession:
        store = StateStore(tmp_path / "state.db")
        market = MarketData(OfflineFeed(), rng=random.Random(0))
        return TradingSession(store, market, advisor=advisor, settings=EngineSettings(**engine_settings))

    return factory
