"""Shared helpers for CLI commands."""

from typing import Optional

from rich.console import Console
from rich.panel import Panel

from quantpilot.config import Settings, load_settings

console = Console()


def get_settings(ctx_obj: Optional[dict] = None) -> Settings:
    """Settings loaded once by the root command (or from disk)."""
    if ctx_obj and "settings" in ctx_obj:
        return ctx_obj["settings"]
    return load_settings()


def build_session(settings: Settings):
    """Create a TradingSession wired to the configured feed and advisor."""
    from quantpilot.agents.advisor import AdvisorAgent
    from quantpilot.db.store import StateStore
    from quantpilot.engine.session import TradingSession
    from quantpilot.feeds.binance import BinanceFeed
    from quantpilot.feeds.market import MarketData

    feed = BinanceFeed(timeout=settings.feed.timeout, proxy_prefix=settings.feed.proxy_prefix)
    market = MarketData(feed, pairs=settings.engine.pairs)
    advisor = AdvisorAgent(model=settings.advisor.model) if settings.advisor.enabled else None
    return TradingSession(
        StateStore(settings.db_path),
        market,
        advisor=advisor,
        settings=settings.engine,
        advisor_timeout=settings.advisor.timeout,
    )


def error_panel(message: str, title: str = "Error") -> None:
    """Print an error panel and exit with status 1."""
    console.print(Panel(
        f"[red]{message}[/red]",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def pnl_markup(value: Optional[float]) -> str:
    """Colorize a P&L value for rich output."""
    if value is None:
        return "[dim]-[/dim]"
    color = "green" if value >= 0 else "red"
    sign = "+" if value >= 0 else ""
    return f"[{color}]{sign}${value:,.2f}[/{color}]"
