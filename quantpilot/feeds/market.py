"""Quote cache and rolling price history per tracked pair."""

import logging
import math
import random
from collections import deque
from datetime import datetime, timedelta
from typing import Optional

from quantpilot.exceptions import FeedError, UnknownPairError
from quantpilot.feeds.base import BaseMarketFeed
from quantpilot.feeds.synthetic import SyntheticFeed
from quantpilot.models import Quote

logger = logging.getLogger(__name__)

DEFAULT_PAIRS = ["BTC/USDT", "ETH/USDT", "SOL/USDT"]

# Opening quotes before the first successful poll: (price, 24h change %)
DEFAULT_QUOTES = {
    "BTC/USDT": (96450.00, 1.20),
    "ETH/USDT": (2680.00, 0.45),
    "SOL/USDT": (198.50, -0.15),
}

# Seed curves: (base, amplitude, drift per sample)
SEED_CURVES = {
    "BTC/USDT": (96000.0, 200.0, 15.0),
    "ETH/USDT": (2600.0, 10.0, 3.0),
    "SOL/USDT": (190.0, 5.0, 0.8),
}

SEED_LENGTH = 60
HISTORY_SIZE = 101


def seed_history(pair: str, reference_price: float, length: int = SEED_LENGTH) -> list[float]:
    """Build a gently trending warm-up history so analysis can start at once.

    Args:
        pair: Asset pair.
        reference_price: Price used to scale the curve for unknown pairs.
        length: Number of samples.

    Returns:
        Prices oldest first.
    """
    base, amplitude, drift = SEED_CURVES.get(
        pair,
        (reference_price * 0.99, reference_price * 0.002, reference_price * 0.00015),
    )
    return [base + math.sin(i / 10) * amplitude + i * drift for i in range(length)]


class MarketData:
    """Latest quotes and bounded price histories for the tracked pairs.

    ``poll`` performs the (blocking) feed request and falls back to a
    synthetic random walk on any feed failure; ``apply`` records quotes.
    Quote timestamps are kept strictly increasing per pair.
    """

    def __init__(
        self,
        feed: BaseMarketFeed,
        pairs: Optional[list[str]] = None,
        history_size: int = HISTORY_SIZE,
        rng: Optional[random.Random] = None,
    ):
        """Initialize market data.

        Args:
            feed: Primary (live) feed.
            pairs: Pairs to track. Defaults to DEFAULT_PAIRS.
            history_size: Number of prices retained per pair.
            rng: Random generator for the synthetic fallback.
        """
        self._feed = feed
        self.pairs = list(pairs or DEFAULT_PAIRS)
        self._rng = rng or random.Random()
        self._quotes: dict[str, Quote] = {}
        self._history: dict[str, deque] = {}

        start = datetime.now()
        for pair in self.pairs:
            price, change = DEFAULT_QUOTES.get(pair, (100.0, 0.0))
            self._quotes[pair] = Quote(
                pair=pair, price=price, change_percent=change, timestamp=start, synthetic=True
            )
            self._history[pair] = deque(seed_history(pair, price), maxlen=history_size)

    def _check(self, pair: str) -> None:
        if pair not in self._quotes:
            raise UnknownPairError(f"Pair '{pair}' is not tracked")

    def quote(self, pair: str) -> Quote:
        self._check(pair)
        return self._quotes[pair]

    def price(self, pair: str) -> float:
        return self.quote(pair).price

    def quotes(self) -> dict[str, Quote]:
        return dict(self._quotes)

    def history(self, pair: str) -> list[float]:
        self._check(pair)
        return list(self._history[pair])

    def poll(self) -> dict[str, Quote]:
        """Fetch fresh quotes, falling back to a synthetic walk.

        Never raises for feed failures.

        Returns:
            Mapping of pair to Quote for every tracked pair.
        """
        try:
            quotes = self._feed.poll(self.pairs)
            missing = [p for p in self.pairs if p not in quotes]
            if missing:
                raise FeedError(f"Feed returned no quote for {', '.join(missing)}")
            return quotes
        except FeedError as e:
            logger.warning("Market feed unavailable, using synthetic walk: %s", e)
            return SyntheticFeed(self._quotes, rng=self._rng).poll(self.pairs)

    def apply(self, quotes: dict[str, Quote]) -> None:
        """Record polled quotes and extend the histories.

        Args:
            quotes: Mapping of pair to Quote; untracked pairs are ignored.
        """
        for pair, quote in quotes.items():
            if pair not in self._quotes:
                continue
            previous = self._quotes[pair].timestamp
            if quote.timestamp <= previous:
                quote = quote.model_copy(update={"timestamp": previous + timedelta(microseconds=1)})
            self._quotes[pair] = quote
            self._history[pair].append(quote.price)

    def refresh(self) -> dict[str, Quote]:
        """Poll and apply in one step."""
        quotes = self.poll()
        self.apply(quotes)
        return quotes
