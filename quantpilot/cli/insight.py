"""AI insight and performance audit commands for QuantPilot CLI."""

import asyncio

import click
from rich.panel import Panel

from quantpilot.cli.common import build_session, console, error_panel, get_settings, pnl_markup

ACTION_COLORS = {"BUY": "green", "SELL": "red", "HOLD": "yellow"}


@click.command()
@click.argument("pair")
@click.pass_context
def insight(ctx: click.Context, pair: str) -> None:
    """Get a recommendation for PAIR.

    Asks the advisory model first; falls back to the local trend
    engine if it does not answer in time.

    \b
    Examples:
      quantpilot insight BTC/USDT
    """
    from quantpilot.exceptions import UnknownPairError

    session = build_session(get_settings(ctx.obj))

    async def _insight():
        await session.refresh_market()
        return await session.insight(pair.upper())

    with console.status(f"[cyan]Analyzing {pair.upper()}...[/cyan]"):
        try:
            result = asyncio.run(_insight())
        except UnknownPairError as e:
            error_panel(str(e))

    color = ACTION_COLORS[result.action]
    console.print(Panel(
        f"Action:      [{color}]{result.action}[/{color}]\n"
        f"Confidence:  {result.confidence:.0f}%\n"
        f"Support:     ${result.support:,.2f}\n"
        f"Resistance:  ${result.resistance:,.2f}\n"
        f"Source:      {result.provenance.value}\n\n"
        f"{result.reasoning}",
        title=f"[bold]{result.pair}[/bold]",
        border_style=color,
    ))


@click.command()
@click.pass_context
def audit(ctx: click.Context) -> None:
    """Rate realized performance of the active account mode."""
    session = build_session(get_settings(ctx.obj))

    with console.status("[cyan]Auditing performance...[/cyan]"):
        report = asyncio.run(session.audit())

    console.print(Panel(
        f"Rating:       [bold]{report.rating}[/bold]\n"
        f"Efficiency:   {report.efficiency_score}\n"
        f"Win Rate:     {report.win_rate:.1f}%\n"
        f"Net P&L:      {pnl_markup(report.net_pnl)}\n"
        f"Source:       {report.provenance.value}\n\n"
        f"{report.critique}\n\n"
        f"[dim]Adjustment:[/dim] {report.recommended_adjustment}",
        title=f"[bold]Performance Audit ({session.mode.value})[/bold]",
        border_style="cyan",
    ))
