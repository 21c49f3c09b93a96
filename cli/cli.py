"""CLI for the tactIQ engine.

Developer CLI to score workloads, preview routing and run analysis cycles
against the configured analyzer host, exercising the same code paths as the
HTTP API.
"""

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
import uvicorn
from loguru import logger
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tactiq.analyzers.client import AnalyzerClient
from tactiq.analyzers.errors import AnalysisFailedError, AnalyzerError
from tactiq.config.settings import settings
from tactiq.context.normalize import InvalidContextError, normalize_context
from tactiq.core.logger import setup_logger
from tactiq.orchestrator.orchestrator import AgentOrchestrator, plan_route
from tactiq.scoring.workload import WorkloadSnapshot, score_workload

console = Console()

app = typer.Typer(
    name="tactiq",
    help="tactIQ engine CLI - workload scoring, routing and analysis",
    add_completion=False,
)


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")) -> None:
    setup_logger(level="DEBUG" if debug else settings.log_level, log_file=settings.log_file)


def _load_payload(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(Panel(Text(f"Cannot read payload: {e}", style="bold red"), border_style="red"))
        raise typer.Exit(1) from e
    if not isinstance(payload, dict):
        console.print("[red]Payload must be a JSON object[/red]")
        raise typer.Exit(1)
    return payload


@app.command()
def server(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Run the FastAPI server."""
    logger.info(f"Starting FastAPI server on {host}:{port} (reload={reload})")
    uvicorn.run("tactiq.main:app", host=host, port=port, reload=reload)


@app.command()
def score(
    overs: int = typer.Option(0, "--overs", help="Overs bowled"),
    fatigue: float | None = typer.Option(None, "--fatigue", help="Fatigue index 0-10, derived from load when omitted"),
    limit: float = typer.Option(6.0, "--limit", help="Baseline fatigue limit"),
    spell: int = typer.Option(0, "--spell", help="Overs in the current spell"),
    match_format: str = typer.Option("T20", "--format", help="Match format (T20, ODI, ...)"),
    phase: str = typer.Option("Middle", "--phase", help="Powerplay, Middle or Death"),
    role: str = typer.Option("All-rounder", "--role", help="Bowler role"),
    sleep: float = typer.Option(7.0, "--sleep", help="Sleep hours"),
    recovery_minutes: float = typer.Option(45.0, "--recovery-minutes", help="Recovery minutes"),
    unfit: bool = typer.Option(False, "--unfit", help="Apply the manual unfit override"),
) -> None:
    """Score one bowler workload snapshot."""
    snapshot = WorkloadSnapshot.from_raw(
        overs_bowled=overs,
        match_format=match_format,
        fatigue=fatigue,
        fatigue_limit=limit,
        sleep_hours=sleep,
        recovery_minutes=recovery_minutes,
        phase=phase,
        role=role,
        spell_overs=spell,
        is_unfit=unfit,
    )
    derived = score_workload(snapshot)

    table = Table(title="Workload risk")
    table.add_column("Signal")
    table.add_column("Value")
    table.add_row("Overs", f"{snapshot.overs_bowled}/{snapshot.max_overs}")
    for key, value in derived.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def route(
    payload_file: Path = typer.Argument(..., help="JSON analysis payload"),
    mode: str = typer.Option("auto", "--mode", "-m", help="auto or full"),
) -> None:
    """Show which analyzers an analysis cycle would run for a payload."""
    if mode not in {"auto", "full"}:
        console.print(f"[red]Unknown mode: {mode}[/red]")
        raise typer.Exit(2)
    try:
        context = normalize_context(_load_payload(payload_file))
    except InvalidContextError as e:
        console.print(Panel(Text("Invalid payload", style="bold red"), subtitle=str(e)[:120], border_style="red"))
        raise typer.Exit(1) from e
    decision = plan_route(context, mode)
    console.print(
        Panel(
            Text(f"{decision.intent.value}: {', '.join(decision.selected_analyzers)}", style="bold green"),
            subtitle=decision.rationale,
            border_style="green",
        )
    )
    console.print(JSON(json.dumps(decision.to_payload())))


async def _analyze(mode: str, payload: dict[str, Any]) -> tuple[AgentOrchestrator, Any]:
    async with AnalyzerClient(settings) as client:
        orchestrator = AgentOrchestrator(client)
        recommendation = await orchestrator.run_analysis(mode, payload)
        return orchestrator, recommendation


@app.command()
def analyze(
    payload_file: Path = typer.Argument(..., help="JSON analysis payload"),
    mode: str = typer.Option("auto", "--mode", "-m", help="auto or full"),
) -> None:
    """Run one analysis cycle against the configured analyzer host."""
    if mode not in {"auto", "full"}:
        console.print(f"[red]Unknown mode: {mode}[/red]")
        raise typer.Exit(2)
    payload = _load_payload(payload_file)
    try:
        orchestrator, recommendation = asyncio.run(_analyze(mode, payload))
    except InvalidContextError as e:
        console.print(Panel(Text("Invalid payload", style="bold red"), subtitle=str(e)[:120], border_style="red"))
        raise typer.Exit(1) from e
    except AnalysisFailedError as e:
        detail = e.last_error
        subtitle = f"{detail.status_code or detail.kind.value} {detail.url}" if detail else None
        console.print(Panel(Text(e.message, style="bold red"), subtitle=subtitle, border_style="red"))
        raise typer.Exit(1) from e

    status_table = Table(title="Analyzers")
    status_table.add_column("Analyzer")
    status_table.add_column("Status")
    status_table.add_column("Reason")
    for name, result in orchestrator.state.agents.items():
        status_table.add_row(name, result.status.value, result.reason or "")
    console.print(status_table)

    style = "yellow" if recommendation.partial else "green"
    console.print(
        Panel(
            Text(recommendation.next_action, style=f"bold {style}"),
            subtitle=recommendation.warning,
            border_style=style,
        )
    )
    console.print(JSON(json.dumps(recommendation.to_dict())))


async def _health() -> dict[str, Any]:
    async with AnalyzerClient(settings) as client:
        return await client.check_health()


@app.command()
def health() -> None:
    """Check the analyzer host."""
    try:
        result = asyncio.run(_health())
    except AnalyzerError as e:
        console.print(
            Panel(
                Text("Analyzer host is NOT reachable", style="bold red"),
                subtitle=f"{e.kind.value}: {e.url}",
                border_style="red",
            )
        )
        raise typer.Exit(1) from e
    console.print(Panel(Text("Analyzer host reachable", style="bold green"), border_style="green"))
    console.print(JSON(json.dumps(result)))


if __name__ == "__main__":
    app()
