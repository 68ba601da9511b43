"""Risk, safety and autopilot commands for QuantPilot CLI."""

import asyncio
from typing import Optional

import click
from pydantic import ValidationError
from rich.panel import Panel

from quantpilot.cli.common import build_session, console, error_panel, get_settings, pnl_markup


@click.group()
def risk() -> None:
    """Risk configuration commands.

    \b
    Commands:
      show  - View the current risk configuration
      set   - Change risk parameters for future trades
    """
    pass


@risk.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """View the current risk configuration."""
    session = build_session(get_settings(ctx.obj))
    cfg = session.risk
    console.print(Panel(
        f"Stop-Loss:          {cfg.stop_loss_pct:g}%\n"
        f"Take-Profit:        {cfg.take_profit_pct:g}%\n"
        f"Max Drawdown:       {cfg.max_drawdown_pct:g}%\n"
        f"Autopilot Risk:     {cfg.advisory_risk_pct:g}% of balance\n"
        f"Autopilot Max Size: ${cfg.advisory_max_position:,.2f}",
        title="[bold]Risk Configuration[/bold]",
        border_style="cyan",
    ))


@risk.command("set")
@click.option("--stop-loss", type=float, default=None, help="Stop-loss percent.")
@click.option("--take-profit", type=float, default=None, help="Take-profit percent.")
@click.option("--max-drawdown", type=float, default=None, help="Drawdown percent that trips the kill switch.")
@click.option("--risk-percent", type=float, default=None, help="Share of balance per autopilot entry.")
@click.option("--max-position", type=float, default=None, help="Notional cap per autopilot entry.")
@click.option("--reset", is_flag=True, help="Restore factory defaults.")
@click.pass_context
def set_(
    ctx: click.Context,
    stop_loss: Optional[float],
    take_profit: Optional[float],
    max_drawdown: Optional[float],
    risk_percent: Optional[float],
    max_position: Optional[float],
    reset: bool,
) -> None:
    """Change risk parameters for future trades.

    Trades that are already open keep the levels they opened with.

    \b
    Examples:
      quantpilot risk set --stop-loss 1.5 --take-profit 4
      quantpilot risk set --reset
    """
    from quantpilot.models import RiskConfiguration

    session = build_session(get_settings(ctx.obj))

    if reset:
        changes = RiskConfiguration().model_dump()
    else:
        changes = {
            key: value
            for key, value in {
                "stop_loss_pct": stop_loss,
                "take_profit_pct": take_profit,
                "max_drawdown_pct": max_drawdown,
                "advisory_risk_pct": risk_percent,
                "advisory_max_position": max_position,
            }.items()
            if value is not None
        }
    if not changes:
        console.print("[dim]Nothing to change.[/dim]")
        return

    try:
        asyncio.run(session.update_risk_configuration(**changes))
    except ValidationError as e:
        error_panel(str(e), title="Invalid Risk Configuration")

    console.print("[green]Risk configuration updated.[/green]")
    ctx.invoke(show)


@click.group()
def safety() -> None:
    """Safety kill-switch commands.

    \b
    Commands:
      status   - View loss counters and the active alert
      dismiss  - Clear the alert and reset consecutive losses
    """
    pass


@safety.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """View loss counters and the active alert."""
    session = build_session(get_settings(ctx.obj))
    state = session.safety
    drawdown = session.governor.drawdown_percent(session.balance())
    autopilot = "[green]ON[/green]" if state.autopilot_enabled else "[dim]OFF[/dim]"
    alert = f"[red]{state.alert}[/red]" if state.alert else "[green]none[/green]"
    console.print(Panel(
        f"Autopilot:           {autopilot}\n"
        f"Consecutive Losses:  {state.consecutive_losses}\n"
        f"Cumulative P&L:      {pnl_markup(state.cumulative_pnl)}\n"
        f"Drawdown:            {drawdown:.2f}% (limit {session.risk.max_drawdown_pct:g}%)\n"
        f"Alert:               {alert}",
        title="[bold]Safety[/bold]",
        border_style="red" if state.alert else "cyan",
    ))


@safety.command()
@click.pass_context
def dismiss(ctx: click.Context) -> None:
    """Clear the alert and reset consecutive losses.

    Cumulative P&L is not reset.
    """
    session = build_session(get_settings(ctx.obj))
    asyncio.run(session.dismiss_alert())
    console.print("[green]Safety alert dismissed.[/green]")


@click.command()
@click.argument("state", type=click.Choice(["on", "off"], case_sensitive=False))
@click.pass_context
def autopilot(ctx: click.Context, state: str) -> None:
    """Switch autopilot on or off for the next run."""
    session = build_session(get_settings(ctx.obj))
    enabled = asyncio.run(session.toggle_autopilot(state.lower() == "on"))
    console.print(f"Autopilot {'[green]ON[/green]' if enabled else '[dim]OFF[/dim]'}")
