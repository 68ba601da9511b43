"""Exception hierarchy for QuantPilot."""


class QuantPilotError(Exception):
    """Base class for all QuantPilot errors."""


class InvalidOrderError(QuantPilotError, ValueError):
    """Raised when an order has a non-positive amount or price."""


class InsufficientBalanceError(QuantPilotError):
    """Raised when an order exceeds the available balance of its mode."""

    def __init__(self, required: float, available: float):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient balance. Required: {required:.2f}, Available: {available:.2f}"
        )


class UnknownPairError(QuantPilotError):
    """Raised when a command references a pair that is not tracked."""


class FeedError(QuantPilotError):
    """Raised by market data feeds when a poll fails."""


class AdvisoryError(QuantPilotError):
    """Raised when the advisory service cannot produce a usable response."""
