#!/usr/bin/env python
"""
List available models, personas, items and recent calibration runs.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from calibration_service.core.data_models import Persona, PersonaCategory
from calibration_service.personas import (
    get_all_personas,
    get_persona_set,
    list_persona_sets,
)
from calibration_service.simulation import get_available_models
from calibration_service.simulation.config import CalibrationSettings
from calibration_service.storage import ItemFilter, SQLiteStore

console = Console(force_terminal=True)
app = typer.Typer()


@app.command()
def models() -> None:
    """Models with their token prices."""
    table = Table(title="Models")
    table.add_column("Model", style="bold")
    table.add_column("Input $/1M", justify="right")
    table.add_column("Output $/1M", justify="right")
    for m in get_available_models():
        table.add_row(m.id, f"{m.input_per_1m:.2f}", f"{m.output_per_1m:.2f}")
    console.print(table)


@app.command()
def personas(
    category: PersonaCategory | None = typer.Option(
        None, "--category", "-c", help="Only personas of this category"
    ),
) -> None:
    """Persona sets and the personas they contain, or one category."""
    if category is not None:
        matching = get_all_personas(category=category)
        if not matching:
            console.print(f"[yellow]No personas in category {category}[/yellow]")
            return
        table = Table(title=f"Personas ({category})")
        _add_persona_columns(table)
        for p in matching:
            _add_persona_row(table, p)
        console.print(table)
        return

    for summary in list_persona_sets():
        persona_set = get_persona_set(summary.id)
        table = Table(title=f"{persona_set.name} ({summary.id})")
        _add_persona_columns(table)
        for p in persona_set.personas:
            _add_persona_row(table, p)
        console.print(table)


def _add_persona_columns(table: Table) -> None:
    table.add_column("Persona", style="bold")
    table.add_column("Theta", justify="right")
    table.add_column("Temperature", justify="right")


def _add_persona_row(table: Table, p: Persona) -> None:
    theta = "random" if p.is_random_baseline else f"{p.theta:+.1f}"
    table.add_row(p.id, theta, f"{p.temperature:.1f}")


@app.command()
def items(
    source: str | None = typer.Option(None, "--source", help="Exact source name"),
    topic: str | None = typer.Option(None, "--topic", help="Topic substring"),
    limit: int = typer.Option(50, "-n", "--limit", help="Number of items"),
    db: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Items in the bank, optionally filtered by source and topic."""
    store = SQLiteStore(db or CalibrationSettings().database_path)
    try:
        found = store.get_items(ItemFilter(source=source, topic=topic, limit=limit))
    finally:
        store.close()

    if not found:
        console.print("[yellow]No matching items[/yellow]")
        return

    table = Table(title=f"Items ({len(found)})")
    table.add_column("Item ID", style="bold")
    table.add_column("Source")
    table.add_column("Topic")
    table.add_column("Key", justify="center")
    table.add_column("Stem")
    for item in found:
        stem = item.stem if len(item.stem) <= 60 else item.stem[:57] + "..."
        table.add_row(
            item.id, item.source or "-", item.topic or "-", item.correct, stem
        )
    console.print(table)


@app.command()
def runs(
    limit: int = typer.Option(20, "-n", help="Number of runs"),
    db: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Most recent calibration runs."""
    store = SQLiteStore(db or CalibrationSettings().database_path)
    try:
        recent = store.list_runs(limit=limit)
    finally:
        store.close()

    if not recent:
        console.print("[yellow]No runs yet[/yellow]")
        return

    table = Table(title="Calibration Runs")
    table.add_column("Run ID", style="bold")
    table.add_column("Name")
    table.add_column("Model")
    table.add_column("Status")
    table.add_column("Responses", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Started")
    for run in recent:
        cost = f"${run.total_cost_usd:.4f}" if run.total_cost_usd is not None else "-"
        responses = (
            f"{run.total_responses}/{run.total_cells}"
            if run.total_responses is not None
            else f"-/{run.total_cells}"
        )
        table.add_row(
            run.id,
            run.name or "-",
            run.model,
            run.status,
            responses,
            cost,
            run.started_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


if __name__ == "__main__":
    app()
