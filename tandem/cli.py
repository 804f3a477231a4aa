"""Command line entry point: ``tandem serve | migrate | health``."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.table import Table

from .config.settings import AppSettings, get_settings
from .infrastructure.postgres import HealthMonitor, HealthReport, PoolHealth, PoolRegistry
from .logger import configure_logging

console = Console()


@click.group()
@click.version_option(package_name="tandem")
def cli() -> None:
    """Demo backend API over a primary/replica PostgreSQL pair."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: HOST)")
@click.option("--port", type=int, default=None, help="Bind port (default: PORT)")
def serve(host: str | None, port: int | None) -> None:
    """Run the HTTP service under uvicorn."""
    import uvicorn

    from .api import create_app

    settings = get_settings()
    configure_logging(settings.logging)
    app = create_app(settings)

    # log_config=None keeps uvicorn on the structlog-configured root handler.
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
        timeout_graceful_shutdown=int(settings.database.shutdown_grace_period_s),
    )

    if app.state.shutdown_error is not None:
        raise SystemExit(1)


@cli.command()
def migrate() -> None:
    """Create the tables on the primary if they do not exist."""
    from .db import aapply_schema

    settings = get_settings()
    configure_logging(settings.logging)

    async def _amigrate() -> None:
        async with PoolRegistry(settings.database.to_registry_config()) as registry:
            await aapply_schema(registry)

    asyncio.run(_amigrate())
    console.print("[bold green]Schema applied[/bold green]")


@cli.command()
def health() -> None:
    """Probe both pools once and print the result."""
    settings = get_settings()
    configure_logging(settings.logging)

    report = asyncio.run(_aprobe(settings))
    console.print(_health_table(report))
    raise SystemExit(0 if report.is_healthy else 1)


async def _aprobe(settings: AppSettings) -> HealthReport:
    async with PoolRegistry(settings.database.to_registry_config()) as registry:
        return await HealthMonitor.for_registry(registry).aprobe()


def _health_table(report: HealthReport) -> Table:
    color = {"healthy": "green", "degraded": "yellow"}.get(str(report.status), "red")
    table = Table(title=f"Database health: [{color}]{report.status}[/{color}]")
    table.add_column("Role", style="cyan")
    table.add_column("Endpoint")
    table.add_column("Status")
    table.add_column("Latency (ms)", justify="right")
    table.add_column("Connections", justify="right")
    table.add_column("Message")
    for pool in (report.writable, report.readable):
        table.add_row(*_health_row(pool))
    return table


def _health_row(pool: PoolHealth) -> tuple[str, ...]:
    status = "[green]up[/green]" if pool.is_up else "[red]down[/red]"
    latency = f"{pool.latency_s * 1000:.1f}" if pool.latency_s is not None else "-"
    return (
        str(pool.role),
        pool.endpoint,
        status,
        latency,
        f"{pool.pool_size}/{pool.pool_max_size}",
        pool.message or "",
    )
