"""Main CLI entry point for QuantPilot.

This module provides the main click group and lazy loading
for heavy imports to improve startup time.
"""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    This improves CLI startup time by only importing
    command modules when they are actually invoked.
    """

    def __init__(self, *args, lazy_subcommands: Optional[dict[str, str]] = None, **kwargs):
        """Initialize the lazy group.

        Args:
            lazy_subcommands: Mapping of command names to module paths.
        """
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        """List all available commands."""
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        """Get a command by name, lazily loading if needed."""
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        """Lazily load a command from its module path."""
        import importlib

        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        # Commands whose name clashes with a builtin use a trailing underscore
        for attr_name in (cmd_name, f"{cmd_name}_"):
            attr = getattr(module, attr_name, None)
            if isinstance(attr, click.Command):
                self.add_command(attr, cmd_name)
                return attr

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if isinstance(attr, click.Command) and attr.name == cmd_name:
                self.add_command(attr)
                return attr

        raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")


# Define lazy subcommands mapping
LAZY_SUBCOMMANDS = {
    "run": "quantpilot.cli.run",
    "open": "quantpilot.cli.trade",
    "close": "quantpilot.cli.trade",
    "trades": "quantpilot.cli.trade",
    "balance": "quantpilot.cli.trade",
    "mode": "quantpilot.cli.trade",
    "risk": "quantpilot.cli.risk",
    "safety": "quantpilot.cli.risk",
    "autopilot": "quantpilot.cli.risk",
    # AI Features
    "insight": "quantpilot.cli.insight",
    "audit": "quantpilot.cli.insight",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def configure_logging(verbose: bool) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )
    # Third-party HTTP/LLM clients are chatty at INFO
    for name in ("httpx", "openai", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="quantpilot")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml (default: ~/.config/quantpilot/config.toml).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Optional[Path]) -> None:
    """QuantPilot - risk-managed autopilot trading simulator.

    Simulates trades on crypto pairs with trend-following autopilot
    entries, automatic stop-loss/take-profit settlement and safety
    kill switches.

    \b
    Quick Start:
      quantpilot run --autopilot   # Start the engine
      quantpilot insight BTC/USDT  # Ask for a recommendation
      quantpilot trades            # View trades in the current mode
    """
    from quantpilot.config import load_settings

    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = load_settings(config_path)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
