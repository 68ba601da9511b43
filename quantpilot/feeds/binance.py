"""Binance public ticker feed."""

import logging
from datetime import datetime
from typing import Optional

import requests

from quantpilot.exceptions import FeedError
from quantpilot.feeds.base import BaseMarketFeed
from quantpilot.models import Quote

logger = logging.getLogger(__name__)

TICKER_URL = "https://api.binance.com/api/v3/ticker/24hr"


def to_symbol(pair: str) -> str:
    """Convert "BTC/USDT" to Binance's "BTCUSDT"."""
    return pair.replace("/", "").upper()


class BinanceFeed(BaseMarketFeed):
    """Polls the Binance 24h ticker endpoint for each pair.
    
    An optional proxy prefix can be configured for restricted networks;
    it is prepended to the request URL.
    """

    DEFAULT_TIMEOUT = 4.0

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        proxy_prefix: str = "",
        session: Optional[requests.Session] = None,
    ):
        """Initialize the feed.
        
        Args:
            timeout: Per-request timeout in seconds.
            proxy_prefix: Optional URL prefix for a CORS-style proxy.
            session: Optional requests session (for connection reuse/tests).
        """
        self._timeout = timeout
        self._proxy_prefix = proxy_prefix
        self._session = session or requests.Session()

    def _fetch(self, pair: str) -> Quote:
        url = f"{self._proxy_prefix}{TICKER_URL}"
        try:
            response = self._session.get(
                url, params={"symbol": to_symbol(pair)}, timeout=self._timeout
            )
            response.raise_for_status()
            payload = response.json()
            return Quote(
                pair=pair,
                price=float(payload["lastPrice"]),
                change_percent=float(payload["priceChangePercent"]),
                timestamp=datetime.now(),
            )
        except requests.RequestException as e:
            raise FeedError(f"Ticker request for {pair} failed: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise FeedError(f"Malformed ticker payload for {pair}: {e}") from e

    def poll(self, pairs: list[str]) -> dict[str, Quote]:
        """Fetch live quotes for every pair.
        
        Args:
            pairs: Asset pairs.
            
        Returns:
            Mapping of pair to Quote.
            
        Raises:
            FeedError: If any request fails.
        """
        quotes = {pair: self._fetch(pair) for pair in pairs}
        logger.debug("Polled %d live quotes", len(quotes))
        return quotes
