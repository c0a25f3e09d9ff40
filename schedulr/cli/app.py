"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..adapters.mock_event_store import DEFAULT_MOCK_DATA_FILE, MockEventStore
from ..adapters.supabase_client import SupabaseEventStore
from ..config import AppConfig, PreferencesConfig, get_default_config_path
from ..domain.conflict_detector import ConflictDetector
from ..domain.exceptions import ConfigurationError, SchedulrError
from ..domain.slot_scorer import SlotScorer
from ..services.scheduling import EventStoreProtocol, SchedulingService

app = typer.Typer(
    name="schedulr",
    help="Check calendar conflicts and find the best time slots",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use bundled mock events instead of Supabase.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _load_config(config_file: Optional[Path], mock: bool) -> AppConfig:
    """
    Load the YAML configuration.

    In mock mode a missing default config file falls back to built-in defaults.
    """
    config_path = config_file or get_default_config_path()

    if mock and config_file is None and not config_path.exists():
        return AppConfig()

    return AppConfig.load_from_yaml(config_path)


def _build_event_store(config: AppConfig, mock: bool) -> EventStoreProtocol:
    if mock:
        return MockEventStore.from_json(
            config.mock_data_file or DEFAULT_MOCK_DATA_FILE,
            timezone=config.timezone,
        )

    if config.supabase is None:
        raise ConfigurationError(
            "No supabase section in the configuration. Add one or use --mock."
        )

    return SupabaseEventStore(
        url=config.supabase.url,
        api_key=config.supabase.api_key,
        timezone=config.timezone,
        timeout_seconds=config.supabase.timeout_seconds,
    )


def build_service(config: AppConfig, mock: bool = False) -> SchedulingService:
    """Wire the scheduling service from configuration."""
    return SchedulingService(
        event_store=_build_event_store(config, mock),
        conflict_detector=ConflictDetector(
            default_event_duration_minutes=config.default_event_duration_minutes
        ),
        slot_scorer=SlotScorer(
            default_event_duration_minutes=config.default_event_duration_minutes
        ),
        timezone=config.timezone,
        default_preferences=config.preferences.to_preferences(),
    )


def _parse_local(value: str, fmt: str, tz: str, label: str):
    try:
        return pendulum.from_format(value, fmt, tz=tz)
    except ValueError as e:
        raise ValueError(f"Could not parse {label} '{value}' (expected {fmt}): {e}") from e


@app.command()
def check(
    user_id: Annotated[Optional[str], typer.Argument(help="User whose calendar is checked. Defaults to default_user_id.")] = None,
    at: Annotated[str, typer.Option("--at", help="Proposed start (YYYY-MM-DD HH:mm, local time)")] = ...,
    duration: Annotated[int, typer.Option("--duration", "-d", help="Proposed duration in minutes")] = 60,
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Event id to ignore (the event being edited)")] = None,
    no_alternatives: Annotated[bool, typer.Option("--no-alternatives", help="Do not look for alternative times.")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Check whether a proposed event conflicts with existing events.

    Examples:

        schedulr check alice --at "2030-03-04 13:30"
        schedulr check --mock demo-user --at "2030-03-04 12:30" --duration 30
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file, mock)
        resolved_user = config.resolve_user_id(user_id)
        start = _parse_local(at, "YYYY-MM-DD HH:mm", config.timezone, "start")
        service = build_service(config, mock)

        result = asyncio.run(
            service.check_for_conflicts(
                resolved_user,
                start,
                duration_minutes=duration,
                exclude_event_id=exclude,
                include_alternatives=not no_alternatives,
            )
        )

    except (SchedulrError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    end = start.add(minutes=duration)
    console.print(
        f"\n[bold cyan]Proposed:[/bold cyan] {start.format('dddd, DD.MM.YYYY HH:mm')} - {end.format('HH:mm')}\n"
    )

    if not result.has_conflict:
        console.print("[bold green]✓ No conflicts found.[/bold green]\n")
        return

    table = Table(
        title=f"{len(result.conflicts)} conflicting event(s)",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Title", style="bold yellow")
    table.add_column("Start")
    table.add_column("Source", style="dim")
    table.add_column("ID", style="dim")

    for conflict in result.conflicts:
        table.add_row(
            escape(conflict.title),
            conflict.start.format("DD.MM.YYYY HH:mm"),
            conflict.origin.value,
            conflict.id
        )

    console.print(table)

    if result.alternatives:
        console.print("\n[bold]Free alternatives:[/bold]")
        for alternative in result.alternatives:
            console.print(f"  • {alternative.label}")
    elif not no_alternatives:
        console.print("\n[yellow]No free alternatives nearby.[/yellow]")

    console.print()


@app.command()
def suggest(
    user_id: Annotated[Optional[str], typer.Argument(help="User to plan for. Defaults to default_user_id.")] = None,
    date: Annotated[Optional[str], typer.Option("--date", help="Day to plan (YYYY-MM-DD). Defaults to today.")] = None,
    duration: Annotated[int, typer.Option("--duration", "-d", help="Slot length in minutes")] = 60,
    morning: Annotated[Optional[bool], typer.Option("--morning/--no-morning", help="Prefer 09:00-12:00.")] = None,
    afternoon: Annotated[Optional[bool], typer.Option("--afternoon/--no-afternoon", help="Prefer 13:00-17:00.")] = None,
    avoid_back_to_back: Annotated[Optional[bool], typer.Option("--avoid-back-to-back/--allow-back-to-back", help="Penalise slots right next to other events.")] = None,
    min_gap: Annotated[Optional[int], typer.Option("--min-gap", help="Minimum buffer in minutes around other events.")] = None,
    start_hour: Annotated[Optional[int], typer.Option("--start-hour", help="Working day start hour.")] = None,
    end_hour: Annotated[Optional[int], typer.Option("--end-hour", help="Working day end hour.")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Suggest the best time slots for a day.

    Examples:

        schedulr suggest alice --date 2030-03-04 --duration 30 --morning
        schedulr suggest --mock demo-user --date 2030-03-04
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file, mock)
        resolved_user = config.resolve_user_id(user_id)
        tz = config.timezone

        if date:
            target = _parse_local(date, "YYYY-MM-DD", tz, "date")
        else:
            target = pendulum.now(tz).start_of("day")

        overrides = {
            "prefer_morning": morning,
            "prefer_afternoon": afternoon,
            "avoid_back_to_back": avoid_back_to_back,
            "min_gap_minutes": min_gap,
            "preferred_start_hour": start_hour,
            "preferred_end_hour": end_hour,
        }
        # Re-validate so command line overrides get the same checks as the config file
        preferences = PreferencesConfig(
            **{
                **config.preferences.model_dump(),
                **{key: value for key, value in overrides.items() if value is not None},
            }
        )

        service = build_service(config, mock)
        suggestions = asyncio.run(
            service.find_best_time_slots(
                resolved_user,
                target,
                duration_minutes=duration,
                preferences=preferences.to_preferences(),
            )
        )

    except (SchedulrError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print()
    if not suggestions:
        console.print(
            "[yellow]⚠ No free time slots found.[/yellow]\n"
            "Try another day or a shorter duration."
        )
        console.print()
        return

    table = Table(
        title=f"Best {len(suggestions)} slot(s) on {target.format('dddd, DD.MM.YYYY')}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("#", style="dim")
    table.add_column("Time", style="bold yellow")
    table.add_column("Score", justify="right")
    table.add_column("Why")

    for idx, suggestion in enumerate(suggestions, 1):
        table.add_row(
            str(idx),
            f"{suggestion.start.format('HH:mm')} - {suggestion.end.format('HH:mm')}",
            str(suggestion.score),
            suggestion.reason
        )

    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]schedulr[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
