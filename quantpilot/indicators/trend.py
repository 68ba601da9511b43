"""Momentum-based trend classification over a price history."""

from typing import Sequence

from quantpilot.indicators.technical import latest_sma, percent_deviation
from quantpilot.models import TrendSignal

# Window lengths (in samples) for the fast and baseline averages
SHORT_WINDOW = 5
LONG_WINDOW = 20

# Minimum history analyze_trend accepts
MIN_POINTS = LONG_WINDOW

# Momentum (%) beyond which a directional signal is emitted
MOMENTUM_THRESHOLD = 0.15

# Confidence gained per 1% of momentum on top of the base
BASE_CONFIDENCE = 50
CONFIDENCE_PER_PCT = 20


def momentum(history: Sequence[float]) -> float:
    """Deviation (%) of the short average from the long baseline."""
    prices = [float(p) for p in history]
    return percent_deviation(
        latest_sma(prices, SHORT_WINDOW),
        latest_sma(prices, LONG_WINDOW),
    )


def confidence_for(momentum_pct: float) -> int:
    """Map momentum magnitude to a bounded [0, 100] confidence."""
    return int(round(min(100.0, BASE_CONFIDENCE + abs(momentum_pct) * CONFIDENCE_PER_PCT)))


def analyze_trend(history: Sequence[float]) -> TrendSignal:
    """Classify a price history into a BUY/SELL/HOLD signal.
    
    Pure function: the same sequence always produces the same signal.
    
    Args:
        history: Prices ordered oldest to newest.
        
    Returns:
        TrendSignal with action, confidence and reason.
        
    Raises:
        ValueError: If fewer than MIN_POINTS prices are supplied.
    """
    if len(history) < MIN_POINTS:
        raise ValueError(
            f"analyze_trend needs at least {MIN_POINTS} prices, got {len(history)}"
        )
    
    mom = momentum(history)
    confidence = confidence_for(mom)
    
    if mom > MOMENTUM_THRESHOLD:
        action = "BUY"
        reason = f"Upward momentum: SMA{SHORT_WINDOW} is {mom:+.2f}% above SMA{LONG_WINDOW}."
    elif mom < -MOMENTUM_THRESHOLD:
        action = "SELL"
        reason = f"Downward momentum: SMA{SHORT_WINDOW} is {mom:+.2f}% below SMA{LONG_WINDOW}."
    else:
        action = "HOLD"
        reason = f"Consolidation: momentum {mom:+.2f}% within ±{MOMENTUM_THRESHOLD}% band."
    
    return TrendSignal(action=action, confidence=confidence, reason=reason)
