"""
slotctl - blue/green slot switch CLI

Operator commands for moving live traffic between the blue and green slots
of a service and for inspecting where traffic currently goes.
"""

import functools
import json
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import SlotSettings, get_settings
from .coordinator import SlotCoordinator
from .enums import DeploymentSlot
from .exceptions import SlotCoordinatorError
from .health import HealthChecker
from .models import RoutingState
from .observability import configure_logging

console = Console()
err_console = Console(stderr=True, soft_wrap=True)

SLOT_STYLES = {DeploymentSlot.BLUE: "bold blue", DeploymentSlot.GREEN: "bold green"}


def _handle_errors(func):
    """Report coordinator errors and exit with the error's status code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SlotCoordinatorError as e:
            err_console.print(f"[red]❌ {escape(e.message)}[/red]")
            sys.exit(e.exit_code)

    return wrapper


def _coordinator(ctx: click.Context) -> SlotCoordinator:
    return ctx.obj["coordinator"]


def _format_slot(slot: DeploymentSlot | None) -> str:
    if slot is None:
        return "-"
    return f"[{SLOT_STYLES[slot]}]{slot.value}[/{SLOT_STYLES[slot]}]"


def _print_state(state: RoutingState, title: str) -> None:
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Active slot", _format_slot(state.active_slot))
    table.add_row("Previous slot", _format_slot(state.previous_slot))
    table.add_row(
        "Last switched at",
        state.last_switched_at.isoformat() if state.last_switched_at else "never",
    )
    console.print(table)


@click.group()
@click.version_option(version=__version__, prog_name="slotctl")
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Routing state file (default: SLOTS_STATE_FILE or .slotctl/state.json)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Log level (default: SLOTS_LOG_LEVEL or INFO)",
)
@click.pass_context
def cli(ctx, state_file: Path | None, log_level: str | None):
    """Blue/green slot switch CLI

    Moves live traffic between the blue and green slots of a service and
    rolls it back.
    """
    overrides = {}
    if state_file is not None:
        overrides["state_file"] = state_file
    if log_level is not None:
        overrides["log_level"] = log_level.upper()

    try:
        base_settings = get_settings()
    except ValidationError as e:
        err_console.print(f"[red]❌ Invalid slotctl configuration:[/red]\n{escape(str(e))}")
        sys.exit(1)

    settings = base_settings.model_copy(update=overrides) if overrides else base_settings
    configure_logging(settings.service_name, settings.log_level, settings.log_format)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["coordinator"] = SlotCoordinator.from_settings(settings)


@cli.command()
@click.argument("slot")
@click.option("--operator", help="Who is performing the switch")
@click.option(
    "--check-health/--no-check-health",
    default=None,
    help="Probe the target slot before switching (default: SLOTS_HEALTH_CHECK_ENABLED)",
)
@click.pass_context
@_handle_errors
def switch(ctx, slot: str, operator: str | None, check_health: bool | None):
    """Send live traffic to SLOT (blue or green)."""
    coordinator = _coordinator(ctx)
    settings: SlotSettings = ctx.obj["settings"]

    if check_health and coordinator.health_checker is None:
        coordinator.health_checker = HealthChecker(
            settings.upstreams(),
            timeout=settings.health_check_timeout,
            retries=settings.health_check_retries,
        )

    state = coordinator.switch_to(slot, operator=operator, check_health=check_health)
    console.print(f"✅ Live traffic now goes to {_format_slot(state.active_slot)}")
    _print_state(state, "Routing State")


@cli.command()
@click.option("--operator", help="Who is performing the rollback")
@click.pass_context
@_handle_errors
def rollback(ctx, operator: str | None):
    """Restore the slot that was live before the last switch."""
    state = _coordinator(ctx).rollback(operator=operator)
    console.print(f"⏪ Rolled back; live traffic now goes to {_format_slot(state.active_slot)}")
    _print_state(state, "Routing State")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print state as JSON")
@click.pass_context
@_handle_errors
def status(ctx, as_json: bool):
    """Show which slot receives live traffic."""
    state = _coordinator(ctx).state

    if as_json:
        click.echo(json.dumps(state.to_dict(), indent=2))
        return

    _print_state(state, f"Routing State: {ctx.obj['settings'].service_name}")


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), help="Show only the newest N entries")
@click.option("--json", "as_json", is_flag=True, help="Print history as JSON")
@click.pass_context
@_handle_errors
def history(ctx, limit: int | None, as_json: bool):
    """List recorded switches and rollbacks, oldest first."""
    records = _coordinator(ctx).history(limit=limit)

    if as_json:
        click.echo(json.dumps([record.to_dict() for record in records], indent=2))
        return

    if not records:
        console.print("[yellow]No switches recorded yet[/yellow]")
        return

    table = Table(title="Switch History")
    table.add_column("Switched At", style="cyan")
    table.add_column("Action")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Operator", style="yellow")

    for record in records:
        table.add_row(
            record.switched_at.isoformat(),
            record.action.value,
            _format_slot(record.from_slot),
            _format_slot(record.to_slot),
            record.operator or "-",
        )
    console.print(table)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
