"""Engine run command for QuantPilot CLI.

Starts the market, autopilot and settlement schedulers and renders a
live dashboard until interrupted.
"""

import asyncio
from typing import Optional

import click
from rich.console import Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from quantpilot.cli.common import build_session, console, get_settings, pnl_markup

EVENT_STYLES = {"info": "white", "success": "green", "warning": "yellow", "ai": "cyan"}


def render_dashboard(session) -> Group:
    """Build the live dashboard for a running session."""
    quotes = Table(title="Market", show_header=True, header_style="bold", expand=True)
    quotes.add_column("Pair", style="bold")
    quotes.add_column("Price", justify="right")
    quotes.add_column("24h", justify="right")
    quotes.add_column("Feed", justify="center")
    for pair, quote in session.quotes().items():
        color = "green" if quote.change_percent >= 0 else "red"
        quotes.add_row(
            pair,
            f"${quote.price:,.2f}",
            f"[{color}]{quote.change_label}[/{color}]",
            "[yellow]synthetic[/yellow]" if quote.synthetic else "live",
        )

    positions = Table(title="Open Positions", show_header=True, header_style="bold", expand=True)
    positions.add_column("ID", style="dim")
    positions.add_column("Pair", style="bold")
    positions.add_column("Side", justify="center")
    positions.add_column("Notional", justify="right")
    positions.add_column("Entry", justify="right")
    positions.add_column("Unrealized", justify="right")
    for trade in session.ledger.active_trades(session.mode):
        price = session.market.price(trade.pair) if trade.pair in session.market.pairs else trade.entry_price
        unrealized = trade.amount * trade.pnl_percent_at(price) / 100
        positions.add_row(
            trade.id,
            trade.pair,
            trade.side.value,
            f"${trade.amount:,.2f}",
            f"${trade.entry_price:,.2f}",
            pnl_markup(unrealized),
        )

    autopilot = "[green]ON[/green]" if session.governor.autopilot_enabled else "[dim]OFF[/dim]"
    header = (
        f"Mode: [bold]{session.mode.value}[/bold]   "
        f"Balance: [bold]${session.balance():,.2f}[/bold]   "
        f"Autopilot: {autopilot}   "
        f"Losses in a row: {session.governor.consecutive_losses}"
    )

    events = "\n".join(
        f"[dim]{e.timestamp:%H:%M:%S}[/dim] [{EVENT_STYLES[e.level]}]{e.message}[/{EVENT_STYLES[e.level]}]"
        for e in session.events_log()[-10:]
    ) or "[dim]No events yet.[/dim]"

    parts = [Panel(header, border_style="cyan")]
    if session.alert:
        parts.append(Panel(
            f"[bold red]{session.alert}[/bold red]\n[dim]Run 'quantpilot safety dismiss' to reset.[/dim]",
            border_style="red",
        ))
    parts.extend([quotes, positions, Panel(events, title="Events", border_style="dim")])
    return Group(*parts)


async def _run_engine(session, duration: Optional[float], autopilot: Optional[bool]) -> None:
    if autopilot is not None:
        await session.toggle_autopilot(autopilot)

    session.start()
    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration if duration else None
    try:
        with Live(render_dashboard(session), console=console, refresh_per_second=2) as live:
            while deadline is None or loop.time() < deadline:
                await asyncio.sleep(1)
                live.update(render_dashboard(session))
    finally:
        await session.stop()


@click.command()
@click.option(
    "--autopilot/--no-autopilot",
    default=None,
    help="Enable or disable autopilot for this run (default: keep saved state).",
)
@click.option(
    "-d", "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: run until Ctrl-C).",
)
@click.pass_context
def run(ctx: click.Context, autopilot: Optional[bool], duration: Optional[float]) -> None:
    """Run the trading engine with a live dashboard.

    Quotes refresh every 8s, open trades are checked against their
    stop-loss/take-profit every 5s, and, with autopilot on, new long
    entries are considered every 10s.

    \b
    Examples:
      quantpilot run --autopilot
      quantpilot run --duration 120
    """
    session = build_session(get_settings(ctx.obj))
    try:
        asyncio.run(_run_engine(session, duration, autopilot))
    except KeyboardInterrupt:
        pass
    console.print(
        f"[dim]Engine stopped. {session.mode.value} balance: ${session.balance():,.2f}[/dim]"
    )
