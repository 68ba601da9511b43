"""Trading commands for QuantPilot CLI.

Handles manual trade entry and exit, trade listing, balances and the
active account mode.
"""

import asyncio
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from quantpilot.cli.common import build_session, console, error_panel, get_settings, pnl_markup


@click.command("open")
@click.argument("pair")
@click.argument("side", type=click.Choice(["BUY", "SELL"], case_sensitive=False))
@click.argument("amount", type=float)
@click.option(
    "-p", "--price",
    type=float,
    default=None,
    help="Entry price. If not specified, uses the latest quote.",
)
@click.pass_context
def open_(ctx: click.Context, pair: str, side: str, amount: float, price: Optional[float]) -> None:
    """Open a manual trade in the current account mode.

    AMOUNT is the notional to commit. Stop-loss and take-profit are
    taken from the current risk configuration.

    \b
    Examples:
      quantpilot open BTC/USDT BUY 500
      quantpilot open ETH/USDT SELL 250 --price 2650
    """
    from quantpilot.exceptions import QuantPilotError
    from quantpilot.models import Side

    session = build_session(get_settings(ctx.obj))

    async def _open():
        if price is None:
            await session.refresh_market()
        return await session.open_trade(pair.upper(), Side(side.upper()), amount, price)

    try:
        trade = asyncio.run(_open())
    except QuantPilotError as e:
        error_panel(str(e), title="Order Rejected")

    console.print(Panel(
        f"[green]{trade.side.value} {trade.pair}[/green]\n\n"
        f"Trade ID:     {trade.id}\n"
        f"Notional:     ${trade.amount:,.2f}\n"
        f"Entry:        ${trade.entry_price:,.2f}\n"
        f"Stop-Loss:    ${trade.stop_loss:,.2f} ({trade.stop_loss_pct:g}%)\n"
        f"Take-Profit:  ${trade.take_profit:,.2f} ({trade.take_profit_pct:g}%)\n"
        f"Mode:         {trade.mode.value}\n"
        f"Balance:      ${session.balance():,.2f}",
        title="[bold green]Order Executed[/bold green]",
        border_style="green",
    ))


@click.command()
@click.argument("trade_id")
@click.pass_context
def close(ctx: click.Context, trade_id: str) -> None:
    """Close an open trade at the latest quote.

    \b
    Examples:
      quantpilot close 3F9A1C0B22DE
    """
    session = build_session(get_settings(ctx.obj))

    async def _close():
        await session.refresh_market()
        return await session.close_trade(trade_id.upper())

    trade = asyncio.run(_close())
    if trade is None:
        console.print(f"[yellow]No open trade with ID {trade_id}.[/yellow]")
        return

    console.print(
        f"Closed [bold]{trade.pair}[/bold] @ ${trade.exit_price:,.2f} | "
        f"PnL: {pnl_markup(trade.pnl)} | Balance: ${session.balance(trade.mode):,.2f}"
    )


@click.command()
@click.option("--open-only", is_flag=True, help="Show only OPEN trades.")
@click.option(
    "-m", "--mode",
    type=click.Choice(["TRIAL", "LIVE"], case_sensitive=False),
    default=None,
    help="Account mode (defaults to the active mode).",
)
@click.pass_context
def trades(ctx: click.Context, open_only: bool, mode: Optional[str]) -> None:
    """List trades of the active (or given) account mode."""
    from quantpilot.models import AccountMode

    session = build_session(get_settings(ctx.obj))
    account = AccountMode(mode.upper()) if mode else session.mode
    rows = session.trades(account)
    if open_only:
        rows = [t for t in rows if t.is_open]

    if not rows:
        console.print(f"[dim]No trades in {account.value} mode.[/dim]")
        return

    table = Table(title=f"Trades ({account.value})", show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Pair", style="bold")
    table.add_column("Side", justify="center")
    table.add_column("Notional", justify="right")
    table.add_column("Entry", justify="right")
    table.add_column("Exit", justify="right")
    table.add_column("SL / TP", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Origin", justify="center")

    for t in rows:
        side_color = "green" if t.side.value == "BUY" else "red"
        table.add_row(
            t.id,
            t.pair,
            f"[{side_color}]{t.side.value}[/{side_color}]",
            f"${t.amount:,.2f}",
            f"${t.entry_price:,.2f}",
            f"${t.exit_price:,.2f}" if t.exit_price else "-",
            f"{t.stop_loss:,.2f} / {t.take_profit:,.2f}",
            pnl_markup(t.pnl),
            t.status.value,
            t.origin.value,
        )

    console.print(table)


@click.command()
@click.pass_context
def balance(ctx: click.Context) -> None:
    """Show balances for both account modes."""
    from quantpilot.models import AccountMode

    session = build_session(get_settings(ctx.obj))
    lines = []
    for account in AccountMode:
        marker = " [cyan](active)[/cyan]" if account is session.mode else ""
        open_count = len(session.ledger.active_trades(account))
        lines.append(
            f"{account.value:<6} ${session.balance(account):>12,.2f}   "
            f"{open_count} open{marker}"
        )
    console.print(Panel("\n".join(lines), title="[bold]Balances[/bold]", border_style="cyan"))


@click.command()
@click.argument("account", type=click.Choice(["TRIAL", "LIVE"], case_sensitive=False), required=False)
@click.pass_context
def mode(ctx: click.Context, account: Optional[str]) -> None:
    """Show or switch the active account mode."""
    from quantpilot.models import AccountMode

    session = build_session(get_settings(ctx.obj))
    if account is None:
        console.print(f"Active mode: [bold]{session.mode.value}[/bold]")
        return

    asyncio.run(session.set_mode(AccountMode(account.upper())))
    console.print(f"Switched to [bold]{session.mode.value}[/bold] mode.")
