"""Technical indicator calculations for trend analysis.

Calculations are validated against pandas rolling windows as a
reference implementation.
"""

import math


def calculate_sma(prices: list[float], period: int) -> list[float]:
    """Calculate Simple Moving Average.
    
    Args:
        prices: List of price values (oldest first)
        period: Number of periods for the moving average
        
    Returns:
        List of SMA values. First (period-1) values will be NaN.
    """
    if len(prices) < period or period < 1:
        return [float('nan')] * len(prices)
    
    result = [float('nan')] * (period - 1)
    window_sum = sum(prices[:period - 1])
    
    for i in range(period - 1, len(prices)):
        window_sum += prices[i]
        result.append(window_sum / period)
        window_sum -= prices[i - period + 1]
    
    return result


def latest_sma(prices: list[float], period: int) -> float:
    """Return the most recent SMA value, or NaN if not enough data."""
    values = calculate_sma(prices[-period:], period)
    return values[-1] if values else float('nan')


def percent_deviation(value: float, baseline: float) -> float:
    """Percentage deviation of ``value`` from ``baseline``.
    
    Returns 0.0 when the baseline is zero or either input is NaN.
    """
    if baseline == 0 or math.isnan(value) or math.isnan(baseline):
        return 0.0
    return (value - baseline) / baseline * 100
