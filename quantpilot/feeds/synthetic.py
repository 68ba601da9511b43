"""Bounded random-walk feed used when live data is unavailable."""

import random
from datetime import datetime
from typing import Optional

from quantpilot.feeds.base import BaseMarketFeed
from quantpilot.models import Quote

# Smallest price the walk may reach
PRICE_FLOOR = 0.01


def step_size(pair: str) -> float:
    """Maximum absolute price move per step for a pair."""
    return 25.0 if "BTC" in pair.upper() else 2.5


class SyntheticFeed(BaseMarketFeed):
    """Random-walk quotes seeded from the last known prices.
    
    Each poll moves every price by at most ``step_size(pair)`` and never
    below PRICE_FLOOR.
    """

    def __init__(self, last_quotes: dict[str, Quote], rng: Optional[random.Random] = None):
        """Initialize the synthetic feed.
        
        Args:
            last_quotes: Quotes the walk continues from.
            rng: Optional random generator (seeded in tests).
        """
        self._last = dict(last_quotes)
        self._rng = rng or random.Random()

    def poll(self, pairs: list[str]) -> dict[str, Quote]:
        """Advance the walk one step for each pair.
        
        Args:
            pairs: Asset pairs; each must have a previous quote.
            
        Returns:
            Mapping of pair to a synthetic Quote.
        """
        quotes = {}
        for pair in pairs:
            previous = self._last[pair]
            movement = (self._rng.random() - 0.5) * 2 * step_size(pair)
            quotes[pair] = Quote(
                pair=pair,
                price=max(PRICE_FLOOR, previous.price + movement),
                change_percent=previous.change_percent,
                timestamp=datetime.now(),
                synthetic=True,
            )
        self._last.update(quotes)
        return quotes
