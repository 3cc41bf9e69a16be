#!/usr/bin/env python
"""
Compute classical test theory statistics for a calibration run.
"""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from calibration_service.simulation.config import CalibrationSettings
from calibration_service.statistics import (
    ItemStatistics,
    StatisticsSummary,
    statistics_to_json,
    summarize_statistics,
    write_statistics_csv,
    write_statistics_json,
)
from calibration_service.statistics.service import compute_synthetic_statistics
from calibration_service.storage import RunNotFoundError, SQLiteStore

logging.getLogger("calibration_service").setLevel(logging.WARNING)

console = Console(force_terminal=True)
app = typer.Typer()


def _style_quality(quality: float) -> str:
    if quality >= 0.8:
        return f"[green]{quality:.2f}[/green]"
    if quality >= 0.5:
        return f"[yellow]{quality:.2f}[/yellow]"
    return f"[red]{quality:.2f}[/red]"


def print_statistics_table(stats: list[ItemStatistics]) -> None:
    """Pretty-print per-item statistics as a rich Table."""
    table = Table(title="Item Statistics")
    table.add_column("Item", style="bold")
    table.add_column("N", justify="right")
    table.add_column("Difficulty", justify="right")
    table.add_column("Discrimination", justify="right")
    table.add_column("A / B / C / D", justify="right")
    table.add_column("Distractors", justify="right")
    table.add_column("Quality", justify="right")
    table.add_column("Flags")

    for s in stats:
        rates = " / ".join(f"{r:.2f}" for r in s.option_rates.as_dict().values())
        table.add_row(
            s.item_id,
            str(s.n_responses),
            f"{s.difficulty:.3f}",
            f"{s.discrimination:.3f}",
            rates,
            f"{s.functional_distractors}/{s.functional_distractors + s.nonfunctional_distractors}",
            _style_quality(s.quality_score),
            ", ".join(s.flags) or "-",
        )

    console.print(table)


def print_summary(summary: StatisticsSummary) -> None:
    lines = [
        f"Items: [cyan]{summary.n_items}[/cyan]",
        f"Mean difficulty: [cyan]{summary.mean_difficulty:.3f}[/cyan]",
        f"Mean discrimination: [cyan]{summary.mean_discrimination:.3f}[/cyan]",
        f"Mean quality: [cyan]{summary.mean_quality:.2f}[/cyan]",
        f"Flagged: [cyan]{summary.n_flagged}[/cyan] "
        f"({summary.flagged_fraction:.0%})",
    ]
    for flag, count in summary.flag_counts.items():
        lines.append(f"  {flag}: {count}")
    console.print(Panel("\n".join(lines), title="Summary"))


@app.command()
def main(
    run_id: str = typer.Argument(..., help="Calibration run id"),
    as_json: bool = typer.Option(
        False, "--json", help="Print statistics as JSON instead of a table"
    ),
    output: Path | None = typer.Option(
        None, "-o", "--output", help="Write statistics to a .csv or .json file"
    ),
    db: Path | None = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Compute and store per-item statistics for a run."""
    store = SQLiteStore(db or CalibrationSettings().database_path)
    try:
        stats = compute_synthetic_statistics(store, run_id)
    except RunNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    finally:
        store.close()

    if not stats:
        console.print("[yellow]Run has no responses[/yellow]")
        raise typer.Exit(1)

    if as_json:
        console.print_json(statistics_to_json(stats))
    else:
        print_statistics_table(stats)
        print_summary(summarize_statistics(stats))

    if output is not None:
        if output.suffix.lower() == ".json":
            write_statistics_json(stats, output)
        else:
            write_statistics_csv(stats, output)
        console.print(f"Statistics saved: [cyan]{output}[/cyan]")


if __name__ == "__main__":
    app()
