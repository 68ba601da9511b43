"""CLI commands for QuantPilot.

This package provides the command-line presentation layer: running the
engine, manual trades, risk settings, safety alerts and insights.
"""

from quantpilot.cli.main import cli, main

__all__ = ["cli", "main"]
