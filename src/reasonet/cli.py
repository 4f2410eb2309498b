"""
Reasonet CLI - command-line interface for operating the review service.

Minimal CLI providing server management, database setup and operator tools
for reconciling analyses and replaying webhook deliveries.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from reasonet.logging_config import setup_logging

app = typer.Typer(
    name="reasonet",
    help="Reasonet - automated pull request review for GitHub App installations",
    no_args_is_help=True,
)

console = Console()


def _init_logging() -> None:
    # Fall back to console logging if file logging is not permitted
    try:
        setup_logging(context="cli")
    except PermissionError:
        import logging

        logging.basicConfig(level=logging.INFO)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to bind to"),
    reload: Optional[bool] = typer.Option(None, help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.

    Serves the GitHub webhook endpoint and the analysis API.
    """
    import uvicorn

    from reasonet.config import settings

    host = host or settings.api_host
    port = port or settings.api_port
    reload = settings.api_reload if reload is None else reload

    console.print("[bold green]Starting Reasonet API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"\n  Webhook URL: http://{host}:{port}/webhooks/github")
    console.print(f"  API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "reasonet.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command("init-db")
def init_db() -> None:
    """
    Create database tables from the models.

    Development helper; deployed databases use `alembic upgrade head`.
    """
    _init_logging()

    from reasonet.db.connection import init_db as create_tables

    create_tables()
    console.print("[green]✓ Database tables created[/green]")


@app.command("stale-analyses")
def stale_analyses(
    minutes: Optional[int] = typer.Option(
        None, help="Age in minutes (default: STALE_ANALYSIS_MINUTES)"
    ),
    mark_failed: bool = typer.Option(
        False,
        "--mark-failed",
        help="Mark stale analyses as FAILED",
    ),
) -> None:
    """
    List analyses stuck in PENDING or PROCESSING.

    These are left behind by crashed or cancelled deliveries.
    """
    _init_logging()

    from reasonet.config import settings
    from reasonet.db.connection import db_session
    from reasonet.db.repositories import AnalysisRepository
    from reasonet.models.db import AnalysisStatus

    age = minutes if minutes is not None else settings.stale_analysis_minutes
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=age)

    with db_session() as session:
        repo = AnalysisRepository(session)
        stale = repo.get_stale(cutoff)

        if not stale:
            console.print(f"[green]No analyses stuck for more than {age} minutes[/green]")
            return

        table = Table(title=f"Analyses stuck for more than {age} minutes")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Status", style="yellow")
        table.add_column("Updated")
        for analysis in stale:
            table.add_row(
                str(analysis.id),
                analysis.name,
                AnalysisStatus(analysis.status).value,
                analysis.updated_at.isoformat() if analysis.updated_at else "",
            )
        console.print(table)

        if mark_failed:
            # PENDING rows still pass through PROCESSING on the way out
            for analysis in stale:
                if AnalysisStatus(analysis.status) == AnalysisStatus.PENDING:
                    repo.transition(analysis, AnalysisStatus.PROCESSING)
                repo.transition(
                    analysis,
                    AnalysisStatus.FAILED,
                    error=f"Abandoned: no progress for more than {age} minutes",
                )
            marked = len(stale)
            console.print(f"[yellow]Marked {marked} analyses as FAILED[/yellow]")


@app.command("sign-payload")
def sign_payload(
    path: Path = typer.Argument(..., help="File containing the raw webhook body"),
    secret: Optional[str] = typer.Option(
        None, help="Webhook secret (default: GITHUB_WEBHOOK_SECRET)"
    ),
) -> None:
    """
    Print the X-Hub-Signature-256 header value for a payload file.

    Useful for replaying a stored delivery against the webhook endpoint.
    """
    from reasonet.config import settings
    from reasonet.github.signature import compute_signature

    if not path.exists():
        console.print(f"[bold red]Error:[/bold red] Path not found: {path}")
        raise typer.Exit(1)

    key = secret or settings.github_webhook_secret
    if not key:
        console.print(
            "[bold red]Error:[/bold red] No secret given and GITHUB_WEBHOOK_SECRET is not set"
        )
        raise typer.Exit(1)

    typer.echo(compute_signature(path.read_bytes(), key))


if __name__ == "__main__":
    app()
