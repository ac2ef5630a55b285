"""
Dockform CLI - converge and migrate Docker resource state.
"""

import logging
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .clients import DockerNetworkClient, DockerServiceClient, DockerVolumeClient, connect
from .errors import DockformError, StateStoreError
from .labels import LabelSet
from .models import ManagedResource, ResourceKind
from .reconcilers import NetworkReconciler, ServiceReconciler, VolumeReconciler
from .settings import get_settings
from .state import StateStore

# Setup
app = typer.Typer(
    name="dockform",
    help="Converge and migrate Docker resource state",
    add_completion=False,
)
console = Console()


def configure_logging():
    """Configure logging based on settings."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Configure logging on module import
configure_logging()


class RemovableKind(str, Enum):
    network = "network"
    volume = "volume"
    service = "service"


def _state_file(state_file: Path | None) -> Path:
    return state_file or get_settings().state_file


def _handle_command_error(e: Exception, command_type: str) -> None:
    """Print a command failure and exit non-zero."""
    console.print(f"\n[bold red]✗ {command_type} failed:[/bold red] {e}")
    raise typer.Exit(code=1)


@app.command()
def upgrade(
    state_file: Path = typer.Argument(None, help="State file (default: DF_STATE_FILE)"),
):
    """Upgrade every record in a state file to the current schema versions."""
    path = _state_file(state_file)
    try:
        upgraded = StateStore(path).upgrade()
    except DockformError as e:
        _handle_command_error(e, "Upgrade")

    if upgraded:
        console.print(f"[bold green]✓ Upgraded {len(upgraded)} resource(s)[/bold green] in {path}")
        for key in upgraded:
            console.print(f"  [dim]• {key}[/dim]")
    else:
        console.print(f"[green]✓ {path} is already current[/green]")


@app.command()
def show(
    state_file: Path = typer.Argument(None, help="State file (default: DF_STATE_FILE)"),
):
    """List the managed resources in a state file."""
    path = _state_file(state_file)
    try:
        resources = StateStore(path).load()
    except DockformError as e:
        _handle_command_error(e, "Show")

    if not resources:
        console.print(f"[dim]No resources in {path}[/dim]")
        return

    table = Table(title=str(path))
    table.add_column("ID")
    table.add_column("Kind")
    table.add_column("Name")
    table.add_column("Schema", justify="right")
    table.add_column("Labels")
    for key, resource in sorted(resources.items()):
        labels = LabelSet.from_raw(resource.state.get("labels"))
        table.add_row(
            key,
            resource.kind.value,
            str(resource.state.get("name", "")),
            str(resource.state.schema_version),
            ", ".join(f"{r.label}={r.value}" for r in labels),
        )
    console.print(table)


@app.command()
def remove(
    kind: RemovableKind = typer.Argument(..., help="Resource kind"),
    resource_id: str = typer.Argument(..., help="Resource ID (volume name for volumes)"),
    state_file: Path = typer.Option(None, "--state-file", help="State file to drop the record from"),
):
    """Remove a network, volume or service and wait until it is gone."""
    store = StateStore(_state_file(state_file))
    try:
        resource = store.get(resource_id) or ManagedResource(
            kind=ResourceKind(kind.value), id=resource_id
        )
        if resource.kind.value != kind.value:
            raise StateStoreError(
                f"'{resource_id}' is recorded as a {resource.kind.value}, not a {kind.value}"
            )
        client = connect()
        if kind == RemovableKind.network:
            NetworkReconciler(DockerNetworkClient(client)).remove(resource)
        elif kind == RemovableKind.volume:
            VolumeReconciler(DockerVolumeClient(client)).remove(resource)
        else:
            ServiceReconciler(DockerServiceClient(client)).delete(resource)
        store.delete(resource_id)
    except DockformError as e:
        _handle_command_error(e, "Remove")

    console.print(f"[bold green]✓ Removed {kind.value} {resource_id}[/bold green]")


@app.command()
def version():
    """Show Dockform version."""
    console.print(f"[bold]Dockform[/bold] version {__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
