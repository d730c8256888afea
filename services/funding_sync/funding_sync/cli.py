"""Command-line interface for the funding sync pipeline."""

from __future__ import annotations

import json
from contextlib import closing

import typer

from .runtime import build_runtime

app = typer.Typer(add_completion=False, help="Funding data sync pipeline")


@app.command("run")
def run_command() -> None:
    """Run the pipeline once and print the result."""
    runtime = build_runtime()
    with closing(runtime):
        result = runtime.pipeline.run(trigger="cli")
    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    if not result.success:
        raise typer.Exit(code=1)


@app.command("status")
def status_command() -> None:
    """Print the summary of the current snapshot."""
    runtime = build_runtime()
    with closing(runtime):
        status = runtime.store.read_status()
    if status is None:
        typer.echo("No snapshot found", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(status, indent=2, ensure_ascii=False))


@app.command("backups")
def backups_command() -> None:
    """List backups of superseded snapshots, oldest first."""
    runtime = build_runtime()
    with closing(runtime):
        backups = runtime.store.list_backups()
    for path in backups:
        typer.echo(str(path))


@app.command("service")
def service_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Service bind host"),
    port: int = typer.Option(3001, "--port", help="Service port"),
) -> None:
    import uvicorn

    uvicorn.run(
        "funding_sync.app:create_app",
        host=host,
        port=port,
        factory=True,
        log_level="info",
    )


def main():
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
