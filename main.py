#!/usr/bin/env python3
"""
FeedFlux - Feed to Time-Series Collector
========================================

Main application entry point with CLI interface.

Usage:
    python main.py --help                              # Show all commands
    python main.py check-config                        # Validate configuration
    python main.py run --feed URL [--feed URL ...]     # Collect forever
    python main.py run --feed URL --once --dry-run     # One cycle, no writes
    python main.py inspect URL                         # Show normalized events
"""

import sys
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from feedflux.config.settings import FeedFluxSettings, load_settings, set_settings
from feedflux.ingestion.detector import SchemaDetector
from feedflux.ingestion.fetcher import FeedFetcher
from feedflux.ingestion.normalizer import normalize
from feedflux.scheduler.collector import Collector, CycleResult
from feedflux.storage.sink import TAG_KEYS, build_point
from feedflux.storage.stores import MemoryStore, create_store
from feedflux.utils.logging import configure_application_logging, get_logger_for_component
from feedflux.utils.exceptions import FeedFluxError, get_user_friendly_message
from feedflux.utils.validators import URLValidator

console = Console()


def _build_settings(ctx: click.Context, **overrides: Any) -> FeedFluxSettings:
    """Merge CLI flags over environment settings and install them globally."""
    if ctx.obj.get("debug"):
        overrides["debug"] = True
    settings = load_settings(**{k: v for k, v in overrides.items() if v not in (None, {}, [], ())})
    set_settings(settings)
    configure_application_logging(
        log_level=settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    return settings


def _fail(error: Exception) -> None:
    console.print(f"[bold red]❌ {escape(get_user_friendly_message(error))}[/bold red]")
    if isinstance(error, FeedFluxError):
        console.print(f"[dim]{escape(str(error))}[/dim]")
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """FeedFlux - record Atom/RSS feed entries in InfluxDB."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option('--host', default=None, help='InfluxDB hostname')
@click.option('--port', default=None, type=int, help='InfluxDB port')
@click.option('--database', default=None, help='InfluxDB database name')
@click.option('--username', default=None, help='InfluxDB username')
@click.option('--password', default=None, help='InfluxDB password')
@click.option('--feed', 'feeds', multiple=True, help='Feeds to process (atom or rss), can pass multiple.')
@click.option('--time', 'sleep_ms', default=None, type=int, help='Milliseconds to wait in loop')
@click.option('--once', is_flag=True, help='Run a single cycle and exit')
@click.option('--dry-run', is_flag=True, help='Keep points in memory instead of writing to InfluxDB')
@click.pass_context
def run(ctx, host, port, database, username, password, feeds, sleep_ms, once, dry_run):
    """Collect feeds into InfluxDB on a fixed interval."""
    influx: Dict[str, Any] = {
        key: value
        for key, value in {
            "host": host, "port": port, "database": database,
            "username": username, "password": password,
        }.items()
        if value is not None
    }
    collector_overrides = {"sleep_interval_ms": sleep_ms} if sleep_ms is not None else {}

    try:
        settings = _build_settings(
            ctx, influx=influx, feeds=list(feeds), collector=collector_overrides
        )
        settings.require_feeds()
    except FeedFluxError as e:
        _fail(e)

    logger = get_logger_for_component("main", database=settings.influx.database)

    try:
        logger.info(f"connecting to InfluxDB, creating database {settings.influx.database}")
        store = create_store(settings.influx, dry_run=dry_run)
        store.ensure_database()
        logger.info("connected to InfluxDB successfully, starting up the collector")
    except FeedFluxError as e:
        logger.error(f"could not connect to InfluxDB: {e}")
        _fail(e)

    collector = Collector(store, settings=settings)
    try:
        results = collector.run_forever(max_cycles=1 if once else None)
    except KeyboardInterrupt:
        logger.info("Collector interrupted by user")
        results = []
    finally:
        collector.fetcher.close()
        store.close()

    for result in results:
        _print_cycle(result)
    if dry_run and isinstance(store, MemoryStore):
        _print_points(store)


def _print_cycle(result: CycleResult) -> None:
    table = Table(title=f"Cycle {result.cycle}")
    table.add_column("Feed", style="cyan")
    table.add_column("Dialect")
    table.add_column("Entries", justify="right")
    table.add_column("Written", justify="right", style="green")
    table.add_column("Status")

    for source in result.sources:
        status = "✅" if source.success else f"❌ {escape(source.error or f'{source.failed} failed writes')}"
        table.add_row(
            escape(source.feed_url), source.dialect or "-", str(source.entries), str(source.written), status
        )
    console.print(table)


def _print_points(store: MemoryStore) -> None:
    table = Table(title=f"Points retained ({len(store.points)})")
    table.add_column("Measurement", style="cyan")
    table.add_column("Time")
    for key in TAG_KEYS:
        table.add_column(key)
    for point in store.all_points():
        table.add_row(
            escape(point.measurement),
            point.time.isoformat(),
            *[escape(str(point.tags.get(key, point.fields.get(key, "")))) for key in TAG_KEYS],
        )
    console.print(table)


@cli.command(name="inspect")
@click.argument('url')
@click.pass_context
def inspect_feed(ctx, url):
    """Fetch, decode and normalize one feed without writing anything."""
    try:
        settings = _build_settings(ctx, feeds=[url])
        fetcher = FeedFetcher(settings)
        try:
            feed = SchemaDetector().decode(fetcher.fetch(url), feed_url=url)
        finally:
            fetcher.close()
        events = normalize(feed, url)
    except FeedFluxError as e:
        _fail(e)

    console.print(f"[bold blue]{feed.dialect.value}[/bold blue] feed with {len(events)} entries")
    store = MemoryStore(settings.influx.database)
    for event in events:
        store.write_batch([build_point(event, text_as_field=settings.collector.text_as_field)])
    _print_points(store)


@cli.command()
@click.pass_context
def check_config(ctx):
    """Validate environment configuration."""
    console.print("[bold blue]🔧 Checking FeedFlux Configuration[/bold blue]")

    try:
        settings = load_settings()
    except FeedFluxError as e:
        _fail(e)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    influx = settings.influx
    table.add_row("InfluxDB", "✅ Valid", f"{influx.host}:{influx.port}/{influx.database}")

    all_passed = bool(settings.feeds)
    if not settings.feeds:
        table.add_row("Feeds", "❌ Missing", "Set FEEDFLUX_FEEDS or pass --feed to run")
    for url in settings.feeds:
        hint = "" if URLValidator.is_likely_feed_url(url) else " (does not look like a feed URL)"
        table.add_row("Feed", "✅ Valid", f"{escape(url)}{hint}")

    collector = settings.collector
    table.add_row(
        "Collector",
        "✅ Valid",
        f"every {collector.sleep_interval_ms}ms, timeout {collector.request_timeout}s, "
        f"write failures: {collector.write_failure_policy.value}",
    )
    table.add_row("Logging", "✅ Valid", f"Level: {settings.get_effective_log_level()}")
    console.print(table)

    if all_passed:
        console.print("[bold green]✅ All configuration checks passed![/bold green]")
        sys.exit(0)
    console.print("[bold red]❌ Configuration validation failed[/bold red]")
    sys.exit(1)


if __name__ == "__main__":
    cli()
