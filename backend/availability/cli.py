"""Root CLI group: run the service or drive load against it."""

from __future__ import annotations

import asyncio

import click

from availability import __version__
from availability.config import configure_logging, get_settings


@click.group()
@click.version_option(version=__version__, prog_name="availability")
@click.option("--log-level", default=None, help="Override AVAILABILITY_LOG_LEVEL.")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Console availability service and its load driver."""
    settings = get_settings()
    configure_logging(log_level or settings.log_level)
    ctx.obj = settings


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to settings).")
@click.option("--port", default=None, type=int, help="Listen port (defaults to settings).")
@click.pass_obj
def serve(settings, host: str | None, port: int | None) -> None:
    """Start the availability HTTP service."""
    import uvicorn

    uvicorn.run(
        "availability.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


@cli.command()
@click.option("--base-url", default=None, help="Service URL (defaults to settings).")
@click.option("--interval", type=float, default=None, help="Seconds between requests per console.")
@click.option("--repetitions", type=int, default=None, help="Requests per console; unbounded if omitted.")
@click.option("--concurrency", type=int, default=None, help="Max outstanding requests per console.")
@click.option("--abandon", is_flag=True, help="Cancel in-flight requests on shutdown instead of draining.")
@click.argument("consoles", nargs=-1)
@click.pass_obj
def drive(
    settings,
    base_url: str | None,
    interval: float | None,
    repetitions: int | None,
    concurrency: int | None,
    abandon: bool,
    consoles: tuple[str, ...],
) -> None:
    """Send a steady stream of availability queries for CONSOLES."""
    from availability.client import run_from_settings

    overrides: dict = {}
    if base_url is not None:
        overrides["base_url"] = base_url
    if interval is not None:
        overrides["client_interval_seconds"] = interval
    if repetitions is not None:
        overrides["client_repetitions"] = repetitions
    if concurrency is not None:
        overrides["client_concurrency"] = concurrency
    if abandon:
        overrides["client_drain_on_shutdown"] = False
    if consoles:
        overrides["client_consoles"] = list(consoles)

    state = asyncio.run(run_from_settings(settings.model_copy(update=overrides)))
    for console, counts in state.snapshot().items():
        click.echo(
            f"{console}: issued={counts['issued']} completed={counts['completed']} "
            f"fallbacks={counts['fallbacks']}"
        )


def main() -> None:
    cli()
