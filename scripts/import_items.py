#!/usr/bin/env python
"""
Import multiple-choice items from a JSON file into the local store.
"""

from pathlib import Path

import typer
from rich.console import Console

from calibration_service.core.data import load_items_from_json
from calibration_service.simulation.config import CalibrationSettings
from calibration_service.storage import SQLiteStore

console = Console(force_terminal=True)
app = typer.Typer()


@app.command()
def main(
    input_path: Path = typer.Argument(..., help="JSON file with items"),
    source: str = typer.Option("imported", help="Source label for the items"),
    db: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Load items from JSON and store them."""
    if not input_path.exists():
        console.print(f"[red]File not found: {input_path}[/red]")
        raise typer.Exit(1)

    try:
        items = load_items_from_json(input_path, source=source)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    if not items:
        console.print("[yellow]No multiple-choice items found[/yellow]")
        raise typer.Exit(1)

    store = SQLiteStore(db or CalibrationSettings().database_path)
    try:
        n = store.insert_items(items)
    finally:
        store.close()
    console.print(f"[green]✓[/green] Imported {n} items from [cyan]{input_path}[/cyan]")


if __name__ == "__main__":
    app()
