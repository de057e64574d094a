"""filehost administration CLI.

Runs the core storage classes directly against the configured storage root,
so it works without the HTTP server running.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from filehost.cli import __version__
from filehost.core.config import settings
from filehost.core.services.file_service import FileService
from filehost.core.storage import StorageError
from filehost.infrastructure.logging import setup_logging

app = typer.Typer(
    name="filehost",
    help="filehost CLI - serve and inspect per-tenant file storage",
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
    pretty_exceptions_enable=False,
)

console = Console()


def version_callback(value: bool):
    """Display version and exit."""
    if value:
        console.print(f"filehost v{__version__}")
        raise typer.Exit()


def _format_size(size: float) -> str:
    if size < 1024:
        return f"{size:.0f} B"
    for unit in ("KB", "MB"):
        size /= 1024
        if size < 1024:
            return f"{size:.1f} {unit}"
    return f"{size / 1024:.1f} GB"


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    storage_root: Optional[Path] = typer.Option(
        None,
        "--storage-root",
        "-s",
        help="Storage root directory (defaults to STORAGE_ROOT)",
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """
    filehost CLI

    Serve the API or inspect tenant storage on this machine.
    """
    setup_logging(log_level="DEBUG" if debug else "WARNING", log_format="console")
    ctx.obj = FileService(storage_root=storage_root)


@app.command("serve")
def serve_command(
    host: str = typer.Option(settings.api_host, "--host", help="Bind address"),
    port: int = typer.Option(settings.api_port, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """
    Run the HTTP API with uvicorn.

    Example:
        filehost serve --port 8080
    """
    import uvicorn

    uvicorn.run(
        "filehost.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@app.command("usage")
def usage_command(
    ctx: typer.Context,
    tenant: str = typer.Argument(..., help="Tenant id"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    """
    Show storage used by a tenant against the quota.

    Example:
        filehost usage u1
    """
    service: FileService = ctx.obj

    try:
        usage = asyncio.run(service.usage(tenant))
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(
            json.dumps({"used": usage.used, "total": usage.total, "percentage": usage.percentage})
        )
        return

    table = Table(title=f"Storage usage: {tenant}")
    table.add_column("Used", style="cyan", justify="right")
    table.add_column("Total", style="green", justify="right")
    table.add_column("Percentage", justify="right")

    color = "red" if usage.percentage >= 90 else "yellow" if usage.percentage >= 70 else "green"
    table.add_row(
        _format_size(usage.used),
        _format_size(usage.total),
        f"[{color}]{usage.percentage:.1f}%[/{color}]",
    )
    console.print(table)


@app.command("ls")
def list_command(
    ctx: typer.Context,
    tenant: str = typer.Argument(..., help="Tenant id"),
    path: str = typer.Argument("", help="Directory relative to the tenant root"),
):
    """
    List a directory of a tenant.

    Example:
        filehost ls u1 docs
    """
    service: FileService = ctx.obj

    try:
        directory, nodes = asyncio.run(service.list_directory(tenant, path))
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"{tenant}:{service.relative_path(tenant, directory)}")
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("Type", style="dim")

    for node in nodes:
        name = f"[bold blue]{node.name}/[/bold blue]" if node.is_directory else node.name
        table.add_row(
            name,
            "-" if node.is_directory else _format_size(node.size),
            node.modified.strftime("%Y-%m-%d %H:%M"),
            "directory" if node.is_directory else (node.mime_type or ""),
        )

    console.print(table)
    if not nodes:
        console.print("[dim]Empty directory[/dim]")


if __name__ == "__main__":
    app()
