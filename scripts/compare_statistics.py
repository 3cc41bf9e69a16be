#!/usr/bin/env python
"""
Compare a calibration run's item statistics with real respondent data.

Human responses are read from a CSV (item_id, user_id, selected and
optionally is_correct) and stored alongside the run's items.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from calibration_service.core.data import load_human_responses_csv
from calibration_service.simulation.config import CalibrationSettings
from calibration_service.statistics import CorrelationResult, build_answer_key
from calibration_service.statistics.correlation import MIN_MATCHED_ITEMS
from calibration_service.statistics.service import compare_run_to_human
from calibration_service.storage import RunNotFoundError, SQLiteStore

logging.getLogger("calibration_service").setLevel(logging.WARNING)

console = Console(force_terminal=True)
app = typer.Typer()


def print_correlation(result: CorrelationResult) -> None:
    table = Table(title="Synthetic vs. Human")
    table.add_column("Statistic", style="bold")
    table.add_column("Pearson r", justify="right")
    table.add_column("MAE", justify="right")

    table.add_row(
        "Difficulty",
        f"{result.difficulty_correlation:.3f}",
        f"{result.difficulty_mae:.3f}",
    )
    table.add_row(
        "Discrimination",
        f"{result.discrimination_correlation:.3f}",
        f"{result.discrimination_mae:.3f}",
    )
    console.print(table)
    console.print(
        f"Matched items: [cyan]{result.n_items}[/cyan]  "
        f"Difficulty bias (synthetic - human): "
        f"[cyan]{result.difficulty_bias:+.3f}[/cyan]"
    )

    if result.n_items < MIN_MATCHED_ITEMS:
        console.print(
            f"[yellow]Fewer than {MIN_MATCHED_ITEMS} matched items; "
            f"correlations are not reported[/yellow]"
        )


@app.command()
def main(
    run_id: str = typer.Argument(..., help="Calibration run id"),
    human_csv: Path | None = typer.Option(
        None, "--human", help="CSV of human responses to import first"
    ),
    db: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Correlate synthetic difficulty and discrimination with human data."""
    store = SQLiteStore(db or CalibrationSettings().database_path)
    try:
        if human_csv is not None:
            if not human_csv.exists():
                console.print(f"[red]File not found: {human_csv}[/red]")
                raise typer.Exit(1)
            key = build_answer_key(store.get_items())
            try:
                responses = load_human_responses_csv(human_csv, key)
            except ValueError as e:
                console.print(f"[red]{e}[/red]")
                raise typer.Exit(1) from e
            n = store.insert_human_responses(responses)
            console.print(f"[green]✓[/green] Imported {n} human responses")

        result = compare_run_to_human(store, run_id)
    except RunNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    finally:
        store.close()

    print_correlation(result)


if __name__ == "__main__":
    app()
