"""Base market data feed interface for QuantPilot."""

from abc import ABC, abstractmethod

from quantpilot.models import Quote


class BaseMarketFeed(ABC):
    """Abstract base class for market data feeds.
    
    All feed implementations (Binance, synthetic, etc.) must inherit
    from this class and implement ``poll``.
    """

    @abstractmethod
    def poll(self, pairs: list[str]) -> dict[str, Quote]:
        """Fetch the latest quote for each pair.
        
        Args:
            pairs: Asset pairs (e.g., "BTC/USDT").
            
        Returns:
            Mapping of pair to Quote.
            
        Raises:
            FeedError: If the feed cannot deliver quotes for every pair.
        """
        pass
