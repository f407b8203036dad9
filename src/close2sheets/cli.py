"""CLI for close2sheets."""

import asyncio
import logging
import signal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import click

from close2sheets import __version__
from close2sheets.close.client import CloseClient
from close2sheets.close.fetcher import LeadFetcher
from close2sheets.config import Settings, get_settings
from close2sheets.exceptions import CloseAPIError
from close2sheets.export import SheetExporter
from close2sheets.scheduler import DailyScheduler
from close2sheets.sheets.publisher import SheetPublisher
from close2sheets.sheets.rows import custom_field_keys
from close2sheets.sheets.schema import BASE_LEAD_HEADERS


def _require_settings(ctx: click.Context) -> Settings:
    settings: Settings | None = ctx.obj.get("settings")
    if settings is None:
        click.echo(f"Error loading settings: {ctx.obj.get('settings_error')}", err=True)
        ctx.exit(1)
    return settings


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Export Close CRM leads to Google Sheets."""
    ctx.ensure_object(dict)

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load settings
    try:
        settings = get_settings()
        ctx.obj["settings"] = settings
    except Exception as e:
        ctx.obj["settings_error"] = str(e)


@main.command()
@click.option("--dry-run", is_flag=True, help="Fetch and build rows without writing to Sheets")
@click.pass_context
def export(ctx: click.Context, dry_run: bool) -> None:
    """Run a single export now."""
    settings = _require_settings(ctx)

    if dry_run:
        click.echo("DRY RUN MODE: No changes will be made")
        click.echo()

    async def run() -> None:
        client = CloseClient(settings)
        try:
            publisher = None if dry_run else SheetPublisher.from_settings(settings)
            exporter = SheetExporter(LeadFetcher(client, settings), publisher, settings)
            stats = await exporter.run(dry_run=dry_run)
        finally:
            await client.close()

        # Summary
        click.echo("\n" + "=" * 50)
        click.echo("EXPORT COMPLETE" if stats.published else "EXPORT PREVIEW")
        click.echo("=" * 50)
        click.echo(f"  Leads: {stats.leads}")
        click.echo(f"  Opportunities: {stats.opportunities}")
        click.echo(f"  Custom fields: {stats.custom_fields}")
        if stats.spreadsheet_id:
            click.echo(f"  Spreadsheet: {stats.spreadsheet_id}")

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nExport interrupted by user")
        ctx.exit(130)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@main.command()
@click.option("--run-now", is_flag=True, help="Also run one export immediately on start")
@click.pass_context
def schedule(ctx: click.Context, run_now: bool) -> None:
    """Run the export every day at SCHEDULE_TIME until interrupted."""
    settings = _require_settings(ctx)

    try:
        tz = ZoneInfo(settings.schedule_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        click.echo(f"Error: unknown timezone '{settings.schedule_timezone}'", err=True)
        ctx.exit(1)

    async def run() -> None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
            except NotImplementedError:
                # No loop signal handlers on Windows; Ctrl+C raises KeyboardInterrupt instead
                continue

        client = CloseClient(settings)
        exporter = SheetExporter(
            LeadFetcher(client, settings), SheetPublisher.from_settings(settings), settings
        )
        scheduler = DailyScheduler(exporter.run, settings.schedule_time, tz)

        try:
            if run_now:
                await scheduler.run_once()
            await scheduler.run_forever(stop)
        finally:
            await client.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nScheduler stopped")
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@main.command()
@click.pass_context
def headers(ctx: click.Context) -> None:
    """Show the Leads sheet columns for the current set of leads."""
    settings = _require_settings(ctx)

    async def run() -> None:
        client = CloseClient(settings)
        try:
            leads = await client.list_leads_by_source_tag(settings.source_tag)
        finally:
            await client.close()

        custom_keys = custom_field_keys(leads)
        click.echo(f"{len(leads)} leads tagged '{settings.source_tag}'\n")
        for column in BASE_LEAD_HEADERS:
            click.echo(f"  {column}")
        for column in custom_keys:
            click.echo(f"  {column} (custom)")

    try:
        asyncio.run(run())
    except CloseAPIError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


if __name__ == "__main__":
    main()
