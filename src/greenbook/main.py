from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from greenbook.access import AccessAggregator, HierarchyPolicy
from greenbook.ai import InsightService, build_ai_client
from greenbook.config import settings
from greenbook.data import InMemoryStore
from greenbook.exceptions import GreenbookError

cli = typer.Typer(help="GreenBook AAR CLI (access resolution and AAR insights)")


def _aggregator(data: Optional[Path]) -> AccessAggregator:
    try:
        store = InMemoryStore.from_file(data or settings.paths.data_file)
        policy = HierarchyPolicy.from_settings(settings)
    except GreenbookError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)
    return AccessAggregator(store=store, policy=policy, access=settings.access)


def _emit(payload) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


@cli.command()
def version() -> None:
    """Print runtime version."""
    typer.echo(f"GreenBook AAR {settings.app.version}")


@cli.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload for local development"),
) -> None:
    """Run the GreenBook API server."""
    uvicorn.run(
        "greenbook.api.main:app",
        host=host,
        port=port,
        reload=reload,
        app_dir="src",
    )


@cli.command()
def units(
    user_id: int = typer.Option(..., "--user-id", help="User whose view to resolve"),
    data: Optional[Path] = typer.Option(None, "--data", help="Snapshot file (JSON/YAML)"),
) -> None:
    """List the units a user may access."""
    aggregator = _aggregator(data)
    _emit([u.model_dump(mode="json") for u in aggregator.get_accessible_units(user_id)])


@cli.command()
def users(
    user_id: int = typer.Option(..., "--user-id", help="User whose view to resolve"),
    data: Optional[Path] = typer.Option(None, "--data", help="Snapshot file (JSON/YAML)"),
) -> None:
    """List the personnel a user may access."""
    aggregator = _aggregator(data)
    _emit([u.model_dump(mode="json") for u in aggregator.get_accessible_users(user_id)])


@cli.command()
def aars(
    user_id: int = typer.Option(..., "--user-id", help="User whose view to resolve"),
    data: Optional[Path] = typer.Option(None, "--data", help="Snapshot file (JSON/YAML)"),
) -> None:
    """List the ids of the AARs a user may access."""
    aggregator = _aggregator(data)
    _emit([a.id for a in aggregator.get_accessible_aars(user_id)])


@cli.command()
def analyze(
    user_id: int = typer.Option(..., "--user-id", help="User whose accessible AARs are analyzed"),
    data: Optional[Path] = typer.Option(None, "--data", help="Snapshot file (JSON/YAML)"),
) -> None:
    """Print the insight report over a user's accessible AARs."""
    aggregator = _aggregator(data)
    service = InsightService(aggregator=aggregator, ai_client=build_ai_client(settings))
    _emit(service.generate_for_user(user_id).to_dict())


if __name__ == "__main__":
    cli()
