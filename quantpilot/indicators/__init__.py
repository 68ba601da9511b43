"""Technical indicators and trend analysis for QuantPilot."""

from quantpilot.indicators.technical import calculate_sma, latest_sma, percent_deviation
from quantpilot.indicators.trend import MIN_POINTS, analyze_trend, momentum

__all__ = [
    "MIN_POINTS",
    "analyze_trend",
    "calculate_sma",
    "latest_sma",
    "momentum",
    "percent_deviation",
]
