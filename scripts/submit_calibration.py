#!/usr/bin/env python
"""
Submit a calibration job to the API, follow its progress and show the
resulting item statistics.
"""

import json
import time
from datetime import datetime
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

PROJECT_DIR = Path(__file__).parent.parent.absolute()
DEFAULT_OUTPUT_DIR = PROJECT_DIR / "reports" / "calibration"
DEFAULT_BASE_URL = "http://127.0.0.1:8000"
DEFAULT_POLL_INTERVAL = 2.0

console = Console(force_terminal=True, legacy_windows=True)
app = typer.Typer()


def health_check(client: httpx.Client) -> None:
    """Abort if server is unreachable."""
    try:
        resp = client.get("/api/v1/health")
        resp.raise_for_status()
    except httpx.HTTPError as e:
        console.print(f"[red]Server health check failed: {e}[/red]")
        raise typer.Exit(1) from e


def _print_error(resp: httpx.Response) -> None:
    try:
        body = resp.json()
    except ValueError:
        console.print(f"  {resp.text}")
        return
    console.print(f"  {body.get('message', body.get('detail', body))}")


def submit_job(client: httpx.Client, payload: dict[str, object]) -> str:
    """POST calibration request, return job_id."""
    resp = client.post("/api/v1/calibrations", json=payload)
    if resp.status_code >= 400:
        console.print(
            f"[red]Failed to submit job (HTTP {resp.status_code}):[/red]"
        )
        _print_error(resp)
        raise typer.Exit(1)

    data: dict[str, object] = resp.json()
    console.print(
        f"Job submitted: [cyan]{data['job_id']}[/cyan] "
        f"({data['total_cells']} calls)"
    )
    return str(data["job_id"])


def poll_job(
    client: httpx.Client,
    job_id: str,
    poll_interval: float,
) -> dict[str, object]:
    """Poll until job completes or fails. Returns final status response."""
    with console.status("[bold cyan]Waiting for calibration...") as status:
        while True:
            resp = client.get(f"/api/v1/calibrations/{job_id}")
            resp.raise_for_status()
            data: dict[str, object] = resp.json()

            job_status = data["status"]
            if job_status in ("completed", "failed"):
                return data

            progress = data.get("progress")
            if isinstance(progress, dict):
                status.update(
                    f"[bold cyan]{progress['processed']}/{progress['total']}"
                    f"[/bold cyan] {progress['current_item']} / "
                    f"{progress['current_persona']}"
                )

            time.sleep(poll_interval)


def print_statistics_table(items: list[dict[str, object]]) -> None:
    table = Table(title="Item Statistics")
    table.add_column("Item", style="bold")
    table.add_column("Difficulty", justify="right")
    table.add_column("Discrimination", justify="right")
    table.add_column("Quality", justify="right")
    table.add_column("Flags")

    for s in items:
        flags = s.get("flags") or []
        table.add_row(
            str(s["item_id"]),
            f"{s['difficulty']:.3f}",
            f"{s['discrimination']:.3f}",
            f"{s['quality_score']:.2f}",
            ", ".join(str(f) for f in flags) if isinstance(flags, list) else "-",
        )

    console.print(table)


def save_report(
    output_dir: Path,
    job_id: str,
    data: dict[str, object],
) -> Path:
    """Save full response JSON to output_dir."""
    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = output_dir / f"{timestamp}_{job_id}.json"
    with open(path, "w") as f:
        json.dump(data, f, indent=2, default=str)
    return path


@app.command()
def main(
    persona_set: str | None = typer.Option(None, help="Preset persona set"),
    source: str | None = typer.Option(None, help="Only items from this source"),
    topic: str | None = typer.Option(None, help="Only items whose topic contains this"),
    limit: int | None = typer.Option(None, help="Maximum number of items"),
    trials: int = typer.Option(1, help="Trials per item/persona"),
    model: str | None = typer.Option(None, help="Model id"),
    name: str | None = typer.Option(None, help="Run name"),
    url: str = typer.Option(
        DEFAULT_BASE_URL,
        help="Server base URL",
    ),
    output_dir: Path = typer.Option(
        DEFAULT_OUTPUT_DIR,
        help="Directory for JSON report output",
    ),
    poll_interval: float = typer.Option(
        DEFAULT_POLL_INTERVAL,
        help="Seconds between status polls",
    ),
) -> None:
    """Run a calibration through the API and display item statistics."""
    payload: dict[str, object] = {"n_trials": trials}
    for key, value in (
        ("persona_set", persona_set),
        ("source", source),
        ("topic", topic),
        ("limit", limit),
        ("model", model),
        ("name", name),
    ):
        if value is not None:
            payload[key] = value

    console.print(
        Panel(
            "\n".join(f"{k}: [cyan]{v}[/cyan]" for k, v in payload.items())
            + f"\nServer: [cyan]{url}[/cyan]",
            title="Calibration Request",
        )
    )

    client = httpx.Client(base_url=url, timeout=30.0)
    health_check(client)
    console.print("[green]Server is healthy[/green]")

    job_id = submit_job(client, payload)
    data = poll_job(client, job_id, poll_interval)

    if data["status"] == "failed":
        error = data.get("error", {})
        if isinstance(error, dict):
            console.print(
                f"[red]Job failed: {error.get('message', 'unknown error')}[/red]"
            )
        else:
            console.print(f"[red]Job failed: {error}[/red]")
        raise typer.Exit(1)

    result = data.get("result")
    if isinstance(result, dict):
        console.print(
            f"[green]✓[/green] Run [cyan]{result['run_id']}[/cyan]: "
            f"{result['total_responses']}/{result['total_cells']} responses, "
            f"${result['total_cost_usd']:.4f}"
        )
        resp = client.get(f"/api/v1/runs/{result['run_id']}/statistics")
        resp.raise_for_status()
        statistics = resp.json()
        data["statistics"] = statistics
        print_statistics_table(statistics["items"])

    report_path = save_report(output_dir, job_id, data)
    console.print(f"Report saved: [cyan]{report_path}[/cyan]")


if __name__ == "__main__":
    app()
