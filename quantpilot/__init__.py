"""QuantPilot - risk-managed autopilot trading simulator."""

__version__ = "0.1.0"
