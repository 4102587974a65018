#!/usr/bin/env python3
"""
FundUp Round CLI

Command-line interface for inspecting round configuration and replaying
allocation rounds in-process.

Usage:
    fundup-round show-config [--config FILE] [--json]
    fundup-round simulate <scenario_file> [--no-redeem] [--json]
"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config.loader import load_config, read_toml
from ..exceptions import FundUpError
from ..logger import set_log_level
from .scenario import run_scenario

console = Console()


def format_address(address: str, short: bool = False) -> str:
    """Format address for display."""
    if short:
        return f"{address[:10]}...{address[-8:]}"
    return address


@click.group()
@click.version_option(version="1.0.0", prog_name="fundup-round")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from .env",
)
def cli(log_level: Optional[str]):
    """FundUp allocation round tools.

    Inspect round configuration and simulate quadratic-funding rounds.
    """
    if log_level:
        set_log_level(log_level)


@cli.command("show-config")
@click.option(
    "--config", "-c",
    "config_path",
    type=click.Path(),
    default=None,
    help="Config file (default: $FUNDUP_CONFIG or ./fundup.toml)",
)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def show_config_cmd(config_path: Optional[str], as_json: bool):
    """Print the resolved round configuration.

    Examples:

        fundup-round show-config

        fundup-round show-config --config rounds/q3.toml --json
    """
    try:
        cfg = load_config(config_path)
    except FundUpError as e:
        raise click.ClickException(str(e))

    data = cfg.to_dict()
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    for section, values in data.items():
        table = Table(title=escape(f"[{section}]"), title_justify="left", show_header=False)
        table.add_column("key", style="cyan")
        table.add_column("value")
        for key, value in values.items():
            table.add_row(key, str(value) if value != "" else "[dim]<unset>[/dim]")
        console.print(table)


@cli.command("simulate")
@click.argument("scenario_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--no-redeem", is_flag=True, help="Stop after queueing")
@click.option("--json", "as_json", is_flag=True, help="Print the full mechanism record as JSON")
def simulate_cmd(scenario_file: str, no_redeem: bool, as_json: bool):
    """Replay a round scenario and print per-proposal allocations.

    Examples:

        fundup-round simulate scenario.toml

        fundup-round simulate scenario.toml --no-redeem --json
    """
    try:
        result = run_scenario(read_toml(scenario_file), redeem=not no_redeem)
    except FundUpError as e:
        raise click.ClickException(f"Simulation failed: {e}")

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    mechanism = result.mechanism
    table = Table(title=f"{mechanism.config.name} ({mechanism.config.symbol})")
    table.add_column("#", justify="right")
    table.add_column("Recipient")
    table.add_column("Σ√", justify="right")
    table.add_column("Funding", justify="right")
    table.add_column("Shares", justify="right")
    table.add_column(f"Redeemed ({result.asset.symbol})", justify="right")
    table.add_column("State")

    for outcome in result.outcomes:
        state = outcome.state.name + (f" ({outcome.note})" if outcome.note else "")
        table.add_row(
            str(outcome.proposal_id),
            f"{outcome.recipient_name} {format_address(outcome.recipient, short=True)}",
            str(outcome.votes),
            str(outcome.funding),
            str(outcome.shares),
            str(outcome.redeemed),
            state,
        )
    console.print(table)

    tally = mechanism.strategy.tally
    console.print(
        f"Total funding [bold]{tally.total_funding}[/bold] "
        f"(alpha {tally.alpha_numerator}/{tally.alpha_denominator}, "
        f"rounding surplus {tally.rounding_discrepancy()}), "
        f"tracked assets {mechanism.total_assets}"
    )

    if result.rejected:
        click.echo(click.style("Rejected actions:", fg="yellow"))
        for line in result.rejected:
            click.echo(f"  - {line}")


def main():
    cli()


if __name__ == "__main__":
    main()
