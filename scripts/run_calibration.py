#!/usr/bin/env python
"""
Run a calibration sweep over stored items with a set of synthetic personas.

Items are read from the local store (see import_items.py). Use --estimate to
print the expected cost without calling the generation service.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from calibration_service.core.data_models import Persona
from calibration_service.generation import (
    AnthropicGenerationClient,
    GenerationSettings,
    MissingCredentialError,
)
from calibration_service.personas import (
    get_all_personas,
    get_available_persona_sets,
    get_persona_set,
)
from calibration_service.simulation import (
    CalibrationConfig,
    CalibrationOrchestrator,
    ConfigurationError,
    ProgressUpdate,
    RunCreationError,
    RunSummary,
    SkippedCell,
    select_personas,
)
from calibration_service.simulation.config import CalibrationSettings
from calibration_service.storage import ItemFilter, SQLiteStore

# Suppress verbose logging from calibration_service outside progress sections
logging.getLogger("calibration_service").setLevel(logging.WARNING)

MAX_VISIBLE_LOGS = 5
DEFAULT_PERSONA_SET = "standard-ability"


class _LogBuffer:
    """Ring buffer of recent log messages, renderable as dim Rich text."""

    def __init__(self, maxlen: int = MAX_VISIBLE_LOGS) -> None:
        self._messages: deque[str] = deque(maxlen=maxlen)

    def append(self, msg: str) -> None:
        self._messages.append(msg)

    def __rich__(self) -> Text:
        if not self._messages:
            return Text("")
        indented = "\n".join(f"  {m}" for m in self._messages)
        return Text(indented, style="dim")


class _BufferedLogHandler(logging.Handler):
    """Logging handler that appends log messages to a _LogBuffer."""

    def __init__(self, buffer: _LogBuffer) -> None:
        super().__init__()
        self._buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        self._buffer.append(record.getMessage())


@contextmanager
def _capture_logs() -> Iterator[_LogBuffer]:
    """Temporarily route calibration_service logs to a buffer for Live display."""
    logger = logging.getLogger("calibration_service")
    prev_level = logger.level
    prev_propagate = logger.propagate
    log_buffer = _LogBuffer()
    handler = _BufferedLogHandler(log_buffer)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger.addHandler(handler)
    try:
        yield log_buffer
    finally:
        logger.removeHandler(handler)
        logger.setLevel(prev_level)
        logger.propagate = prev_propagate


console = Console(force_terminal=True)
app = typer.Typer()


def resolve_personas(
    persona_set: str | None, persona_ids: str | None
) -> tuple[Persona, ...]:
    if persona_ids:
        ids = [p.strip() for p in persona_ids.split(",") if p.strip()]
        return select_personas(get_all_personas(), ids)

    name = persona_set or DEFAULT_PERSONA_SET
    if name not in get_available_persona_sets():
        raise ConfigurationError(
            f"Unknown persona set: {name}. "
            f"Available: {', '.join(get_available_persona_sets())}"
        )
    return get_persona_set(name).personas


def print_summary(summary: RunSummary) -> None:
    table = Table(title="Calibration Run")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Run ID", summary.run_id)
    table.add_row(
        "Responses", f"{summary.total_responses}/{summary.total_cells}"
    )
    table.add_row("Parse failures", str(summary.n_parse_failures))
    table.add_row("Adapter errors", str(summary.n_adapter_errors))
    table.add_row("Storage errors", str(summary.n_storage_errors))
    table.add_row("Cost", f"${summary.total_cost_usd:.4f}")
    table.add_row("Duration", f"{summary.duration_ms / 1000:.1f}s")
    console.print(table)

    if summary.cancelled:
        console.print("[yellow]Run was cancelled before all cells ran[/yellow]")


def calibrate(
    config: CalibrationConfig,
    store: SQLiteStore,
    client: AnthropicGenerationClient,
) -> RunSummary:
    """Run the sweep while displaying a progress spinner.

    Logs from calibration_service are shown dimmed above the spinner.
    """
    skipped: list[SkippedCell] = []

    with _capture_logs() as log_buffer:
        spinner = Spinner(
            "dots", text=f"[bold]Calibrating 0/{config.total_cells}..."
        )

        def on_progress(update: ProgressUpdate) -> None:
            spinner.update(
                text=(
                    f"[bold]Calibrating {update.processed}/{update.total}[/bold] "
                    f"{update.current_item} / {update.current_persona}"
                )
            )

        orchestrator = CalibrationOrchestrator(
            store, client, on_progress=on_progress, on_skip=skipped.append
        )

        async def _run() -> RunSummary:
            try:
                return await orchestrator.run(config)
            finally:
                await client.close()

        with Live(
            Group(spinner, log_buffer), console=console, refresh_per_second=10
        ):
            summary = asyncio.run(_run())

    console.print(f"[green]✓[/green] Completed run {summary.run_id}")
    for cell in skipped:
        console.print(
            f"  [dim]skipped {cell.item_id} / {cell.persona_id} "
            f"trial {cell.trial}: {cell.reason}[/dim]"
        )
    return summary


@app.command()
def main(
    persona_set: str | None = typer.Option(
        None,
        "--persona-set",
        help="Preset persona set (default: standard-ability)",
    ),
    personas: str | None = typer.Option(
        None,
        "--personas",
        help="Comma-separated persona ids, instead of a persona set",
    ),
    source: str | None = typer.Option(None, help="Only items from this source"),
    topic: str | None = typer.Option(None, help="Only items whose topic contains this"),
    limit: int | None = typer.Option(None, help="Maximum number of items"),
    trials: int = typer.Option(1, "-t", "--trials", help="Trials per item/persona"),
    model: str | None = typer.Option(None, "-m", "--model", help="Model id"),
    name: str | None = typer.Option(None, "--name", help="Run name"),
    description: str | None = typer.Option(None, help="Run description"),
    workers: int | None = typer.Option(
        None, "--workers", help="Concurrent generation calls"
    ),
    db: Path | None = typer.Option(None, "--db", help="SQLite database path"),
    estimate: bool = typer.Option(
        False, "--estimate", help="Only print the cost estimate"
    ),
) -> None:
    """Run a calibration sweep and store the parsed responses."""
    settings = CalibrationSettings()
    generation_settings = GenerationSettings()
    store = SQLiteStore(db or settings.database_path)

    try:
        if persona_set and personas:
            raise ConfigurationError("Use either --persona-set or --personas")
        item_filter = ItemFilter(source=source, topic=topic, limit=limit)
        items = store.get_items(item_filter)
        if not items:
            raise ConfigurationError(
                f"No items match filter: {item_filter.describe() or 'all'}"
            )

        config = CalibrationConfig(
            items=tuple(items),
            personas=resolve_personas(persona_set, personas),
            model=model or generation_settings.default_model,
            n_trials=trials,
            name=name,
            description=description,
            item_filter=item_filter.describe(),
            max_tokens=generation_settings.max_tokens,
            rate_limit=settings.rate_limit_policy(),
            max_workers=workers or settings.max_workers,
        )
    except (ConfigurationError, ValueError) as e:
        store.close()
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    cost = config.estimate()
    console.print(
        Panel(
            f"[bold]Calibration Request[/bold]\n\n"
            f"Items: [cyan]{len(config.items)}[/cyan]\n"
            f"Personas: [cyan]{', '.join(p.id for p in config.personas)}[/cyan]\n"
            f"Trials: [cyan]{config.n_trials}[/cyan]\n"
            f"Model: [cyan]{config.model}[/cyan]\n"
            f"Calls: [cyan]{cost.calls}[/cyan]\n"
            f"Estimated cost: [cyan]${cost.min_cost:.4f} - ${cost.max_cost:.4f}[/cyan]",
            title="Configuration",
        )
    )

    if estimate:
        store.close()
        return

    try:
        client = AnthropicGenerationClient.from_settings(generation_settings)
    except MissingCredentialError as e:
        store.close()
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    try:
        summary = calibrate(config, store, client)
    except RunCreationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    finally:
        store.close()

    print_summary(summary)


if __name__ == "__main__":
    app()
