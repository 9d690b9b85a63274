"""Command-line interface for mediasync."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .cards.trello import TrelloCardSource
from .catalog.reconciler import CatalogReconciler
from .catalog.store import CatalogStore
from .config import MediaSyncConfig, create_sample_config, load_config
from .core.pipeline import CardStage, PipelineDriver, RunSummary
from .discover.scanner import FileDiscoveryScanner
from .error_handling import CardSourceError, ConfigurationError, SyncError
from .media import MediaKind
from .process_lock import RunLock
from .publish.publisher import EventPublisher
from .services.bus import RabbitMQBus
from .services.objectstore import MinioObjectStore

console = Console()


def setup_logging(
    *,
    verbose: bool = False,
    config: MediaSyncConfig | None = None,
) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    cleanup_logging()

    show_path = level == logging.DEBUG
    handlers: list[logging.Handler] = [
        RichHandler(console=console, rich_tracebacks=True, show_path=show_path),
    ]

    if config and config.log_dir:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_dir / "mediasync.log")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            ),
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    # pika logs every frame at DEBUG
    logging.getLogger("pika").setLevel(logging.WARNING)


def cleanup_logging() -> None:
    """Clean up logging handlers to prevent ResourceWarnings."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            root_logger.removeHandler(handler)


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Configuration file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, verbose: bool) -> None:
    """mediasync - Reconcile requested-media cards with the media catalog."""
    try:
        ctx.ensure_object(dict)
        loaded_config = load_config(config)
        ctx.obj["config"] = loaded_config
        ctx.obj["verbose"] = verbose

        setup_logging(verbose=verbose, config=loaded_config)
    except (OSError, ValueError) as e:
        config_error = ConfigurationError(
            f"Failed to load configuration: {e}",
            config_path=config,
            solution="Run 'mediasync config validate' to check your configuration file",
        )
        console.print(f"[red]Configuration Error:[/red] {config_error}")
        sys.exit(1)


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Reconcile every card on the list and announce stored files."""
    config: MediaSyncConfig = ctx.obj["config"]

    lock = RunLock(config)
    if not lock.acquire():
        pid = lock.holder_pid()
        holder = f" (PID {pid})" if pid else ""
        console.print(f"[red]Another mediasync run is in progress{holder}[/red]")
        sys.exit(1)

    with lock:
        card_source = None
        bus = None
        try:
            card_source = TrelloCardSource(config)
            bus = RabbitMQBus(config)
            driver = PipelineDriver(
                card_source=card_source,
                reconciler=CatalogReconciler(CatalogStore(config)),
                scanner=FileDiscoveryScanner(MinioObjectStore(config)),
                publisher=EventPublisher(bus),
            )
            summary = driver.run()
        except (CardSourceError, ConfigurationError) as e:
            e.display_to_user()
            sys.exit(1)
        finally:
            if card_source is not None:
                card_source.close()
            if bus is not None:
                bus.close()

    console.print(format_summary_table(summary))


@cli.command()
@click.argument(
    "kind",
    type=click.Choice([kind.name.lower() for kind in MediaKind]),
)
@click.argument("name")
@click.argument("media_id")
@click.option("--publish", is_flag=True, help="Publish the discovered events")
@click.pass_context
def scan(
    ctx: click.Context,
    kind: str,
    name: str,
    media_id: str,
    publish: bool,
) -> None:
    """Look up the stored files of one title."""
    config: MediaSyncConfig = ctx.obj["config"]

    try:
        scanner = FileDiscoveryScanner(MinioObjectStore(config))
        events = scanner.discover(MediaKind[kind.upper()], media_id, name)
    except SyncError as e:
        e.display_to_user()
        sys.exit(1)

    table = Table()
    table.add_column("Key")
    table.add_column("Season", justify="right")
    table.add_column("Episode", justify="right")
    table.add_column("Published")

    published = {}
    if publish:
        bus = RabbitMQBus(config)
        try:
            for outcome in EventPublisher(bus).publish(events):
                published[outcome.event.object_key] = outcome.published
        finally:
            bus.close()

    for event in events:
        status = "-"
        if publish:
            status = "[green]yes[/green]" if published[event.object_key] else "[red]no[/red]"
        table.add_row(event.object_key, str(event.season), str(event.episode), status)

    console.print(table)


@cli.group()
@click.pass_context
def catalog(ctx: click.Context) -> None:
    """Catalog inspection commands."""


@catalog.command("list")
@click.pass_context
def catalog_list(ctx: click.Context) -> None:
    """List all records in the catalog."""
    config: MediaSyncConfig = ctx.obj["config"]
    records = CatalogStore(config).get_all_records()

    if not records:
        console.print("Catalog is empty")
        return

    table = Table()
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Metadata")
    table.add_column("Source")
    table.add_column("Status", justify="right")

    for record in records:
        table.add_row(
            record.id,
            record.name,
            record.media_kind.name.title(),
            f"{record.metadata_provider.name}:{record.metadata_id}",
            record.source_type.name.lower(),
            str(record.status),
        )

    console.print(table)


@catalog.command("stats")
@click.pass_context
def catalog_stats(ctx: click.Context) -> None:
    """Show record counts per media type."""
    config: MediaSyncConfig = ctx.obj["config"]
    stats = CatalogStore(config).get_catalog_stats()

    if not stats:
        console.print("Catalog is empty")
        return

    table = Table()
    table.add_column("Type")
    table.add_column("Count", justify="right")
    for media_type, count in stats.items():
        table.add_row(media_type.title(), str(count))

    console.print(table)


@catalog.command("health")
@click.pass_context
def catalog_health(ctx: click.Context) -> None:
    """Check catalog database health and schema integrity."""
    config: MediaSyncConfig = ctx.obj["config"]
    store = CatalogStore(config)

    console.print("[bold blue]Catalog Health Check[/bold blue]")
    console.print()

    health = store.check_database_health()

    if not health["database_readable"]:
        console.print(f"[red]✗[/red] Database is not readable: {store.db_path}")
        if "error" in health:
            console.print(f"[red]Error: {health['error']}[/red]")
        sys.exit(1)

    console.print(f"[green]✓[/green] Database is readable: {store.db_path}")

    if health["table_exists"]:
        console.print("[green]✓[/green] media table exists")
    else:
        console.print("[red]✗[/red] media table missing")

    if health["missing_columns"]:
        console.print(
            f"[yellow]⚠[/yellow] Missing columns: {', '.join(health['missing_columns'])}",
        )
    else:
        console.print("[green]✓[/green] All expected columns present")

    if health["integrity_check"]:
        console.print("[green]✓[/green] Database integrity check passed")
    else:
        console.print("[red]✗[/red] Database integrity check failed")

    if health["duplicate_creator_ids"]:
        console.print(
            f"[yellow]⚠[/yellow] {health['duplicate_creator_ids']} cards have "
            "more than one record",
        )

    console.print(f"[blue]Total Records:[/blue] {health['total_records']}")


@cli.group("config")
@click.pass_context
def config_cmd(ctx: click.Context) -> None:
    """Configuration management commands."""


@config_cmd.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current configuration."""
    config: MediaSyncConfig = ctx.obj["config"]

    table = Table()
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("Catalog Database", str(config.catalog_db))
    table.add_row("Log Directory", str(config.log_dir))
    table.add_row("Trello List", config.trello_list_id)
    table.add_row(
        "Trello Credentials",
        "***" if config.trello_configured else "Not configured",
    )
    table.add_row("S3 Endpoint", config.s3_endpoint or "Not configured")
    table.add_row("Bucket", config.bucket_name)
    table.add_row("AMQP URL", _redact_url(config.amqp_url))

    console.print(table)


@config_cmd.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate current configuration."""
    config: MediaSyncConfig = ctx.obj["config"]

    console.print("[bold]Configuration Validation[/bold]")

    errors = []

    try:
        config.ensure_directories()
        console.print(f"[green]✓[/green] Log directory: {config.log_dir}")
        console.print(f"[green]✓[/green] Catalog directory: {config.catalog_db.parent}")
    except OSError as e:
        console.print(f"[red]✗[/red] Directories: {e}")
        errors.append(f"Directories: {e}")

    for label, ok in [
        ("Trello credentials", config.trello_configured),
        ("S3 endpoint and credentials", config.s3_configured),
    ]:
        if ok:
            console.print(f"[green]✓[/green] {label} configured")
        else:
            console.print(f"[red]✗[/red] {label} not configured")
            errors.append(f"{label} not configured")

    if errors:
        console.print(f"\n[red]Found {len(errors)} configuration errors[/red]")
        sys.exit(1)
    else:
        console.print("\n[green]Configuration is valid[/green]")


@config_cmd.command("init")
@click.option(
    "--path",
    "-p",
    type=click.Path(path_type=Path),
    default=Path.home() / ".config" / "mediasync" / "config.toml",
    help="Path for the configuration file",
)
def config_init(path: Path) -> None:
    """Create a sample configuration file."""
    try:
        create_sample_config(path)
        console.print(f"[green]Created sample configuration at {path}[/green]")
        console.print("Please edit the configuration file with your settings.")
    except OSError as e:
        console.print(f"[red]Error creating configuration: {e}[/red]")
        sys.exit(1)


def format_summary_table(summary: RunSummary) -> Table:
    """Format a run summary into a table of card outcomes."""
    table = Table(title="Sync Summary")
    table.add_column("Card")
    table.add_column("Result")
    table.add_column("Files", justify="right")
    table.add_column("Published", justify="right")
    table.add_column("Reason")

    for outcome in summary.outcomes:
        if outcome.stage is CardStage.SKIPPED:
            stage = outcome.failed_stage.value if outcome.failed_stage else "-"
            result = f"[yellow]skipped at {stage}[/yellow]"
        else:
            result = f"[green]{outcome.stage.value}[/green]"
        table.add_row(
            outcome.card.name,
            result,
            str(outcome.files_found),
            str(outcome.events_published),
            outcome.reason or "",
        )

    return table


def _redact_url(url: str | None) -> str:
    """Hide the password part of a connection URL."""
    if not url:
        return "Not configured"
    scheme, sep, rest = url.partition("://")
    credentials, at, host = rest.rpartition("@")
    if not at:
        return url
    user = credentials.split(":", 1)[0]
    return f"{scheme}{sep}{user}:***@{host}"


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
