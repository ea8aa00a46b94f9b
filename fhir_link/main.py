#!/usr/bin/env python3
"""
fhir-link - Merged Patient Export Entry Point

Builds the merged patient CSV from the FHIR server and uploads it to blob
storage, either once or on the configured cron schedule.

Usage:
    python -m fhir_link.main run
    python -m fhir_link.main serve
    python -m fhir_link.main preview --limit 20
"""

import click
import httpx
from loguru import logger
from rich.console import Console
from rich.table import Table

from fhir_link.config import ConfigurationError, Settings, get_settings
from fhir_link.connectors.fhir import FhirConnector
from fhir_link.exporter import CsvExporter
from fhir_link.extractor import LinkExtractor
from fhir_link.job import MergedPatientJob
from fhir_link.scheduler import build_scheduler
from fhir_link.sinks import create_sink
from fhir_link.utils.logging import setup_logging


console = Console()


def build_job(settings: Settings, http_client: httpx.Client) -> MergedPatientJob:
    """Create the job and its collaborators once; runs reuse them."""
    return MergedPatientJob(
        source=FhirConnector(settings.fhir, http_client=http_client),
        sink=create_sink(settings.storage, http_client=http_client),
        container=settings.storage.container,
        exporter=CsvExporter(
            system_label=settings.export.system_label,
            encoding=settings.export.encoding,
        ),
        filename_prefix=settings.export.filename_prefix,
        unique_suffix=settings.export.unique_suffix,
    )


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug):
    """fhir-link merged patient export"""
    ctx.obj = get_settings()
    if debug:
        setup_logging(level="DEBUG")


@cli.command()
@click.pass_obj
def run(settings: Settings):
    """Build and upload the merged patient CSV once."""
    with httpx.Client(timeout=settings.fhir.timeout, follow_redirects=True) as http_client:
        try:
            job = build_job(settings, http_client)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            console.print(f"[red]✗ Run failed: {e}[/red]")
            return
        result = job.run()

    if result.success:
        console.print(f"[green]✓ {result.blob_name}: {result.pairs_exported} pairs[/green]")
    else:
        console.print(f"[red]✗ Run failed: {'; '.join(result.errors)}[/red]")


@cli.command()
@click.pass_obj
def serve(settings: Settings):
    """Run the export on the configured cron schedule."""
    console.print(f"\n[bold blue]fhir-link scheduler[/bold blue]")
    console.print(f"Schedule: {settings.schedule.cron} ({settings.schedule.timezone})")
    console.print(f"Run on startup: {settings.schedule.run_on_startup}\n")

    with httpx.Client(timeout=settings.fhir.timeout, follow_redirects=True) as http_client:
        try:
            job = build_job(settings, http_client)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            console.print(f"[red]✗ Cannot start scheduler: {e}[/red]")
            return
        scheduler = build_scheduler(job.run, settings.schedule)
        try:
            scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Scheduler stopped")


@cli.command()
@click.option("--limit", type=int, default=20, help="Number of pairs to show")
@click.pass_obj
def preview(settings: Settings, limit: int):
    """Fetch and extract merge pairs without uploading."""
    console.print(f"\n[bold blue]Preview: {settings.fhir.base_url}[/bold blue]\n")

    with FhirConnector(settings.fhir) as connector:
        extractor = LinkExtractor()
        pairs = extractor.extract(connector.search_records())

    table = Table()
    table.add_column("Source")
    table.add_column("Replaced by")

    shown = pairs.sorted()[:limit]
    for pair in shown:
        table.add_row(pair.source_id or "-", pair.target_id or "[dim](empty)[/dim]")

    console.print(table)
    console.print(
        f"\n[dim]Showing {len(shown)} of {len(pairs)} pairs "
        f"from {extractor.stats.records_seen} records[/dim]"
    )


if __name__ == "__main__":
    cli()
