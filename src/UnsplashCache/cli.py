"""Typer-based CLI for UnsplashCache with Pydantic v2 configuration."""

import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from UnsplashCache.cache import UnsplashImageCache
from UnsplashCache.config import UnsplashCacheConfig, load_config, validate_config_file
from UnsplashCache.logging_config import configure_logging
from UnsplashCache.net.client import redact_url
from UnsplashCache.pipeline import RefillState
from UnsplashCache.status import Error, Requesting, StatusEvent

console = Console()
app = typer.Typer(help="UnsplashCache: local cache of random Unsplash photos")

# ============================================================================
# Shared options
# ============================================================================

ConfigOption = typer.Option(
    None, "--config", "-c", help="Path to config file", envvar="UNSPLASH_CACHE_CONFIG"
)
ClientIdOption = typer.Option(None, "--client-id", help="Unsplash access key")
LedgerOption = typer.Option(None, "--ledger", help="SQLite ledger path")
CacheDirOption = typer.Option(None, "--cache-dir", help="Directory for cached images")
VerboseOption = typer.Option(False, "-v", "--verbose", help="Verbose")
JsonLogsOption = typer.Option(False, "--json-logs", help="Emit logs as JSON lines")


def _load(
    config: Optional[str],
    client_id: Optional[str],
    ledger: Optional[str],
    cache_dir: Optional[str],
    extra: Optional[dict[str, Any]] = None,
) -> UnsplashCacheConfig:
    overrides: dict[str, Any] = {
        "client_id": client_id,
        "ledger": {"path": ledger},
        "storage": {"root_dir": cache_dir},
    }
    overrides.update(extra or {})
    return load_config(path=config, cli_overrides=overrides)


def _print_status(event: StatusEvent) -> None:
    if isinstance(event, Error):
        console.print(f"[red]✗ {event.description}[/red]")
    elif isinstance(event, Requesting):
        console.print(f"[dim]Requesting {redact_url(event.path)}[/dim]")
    else:
        console.print(f"[dim]{event}[/dim]")


# ============================================================================
# Commands
# ============================================================================


@app.command()
def refill(
    count: Optional[int] = typer.Option(None, "--count", "-n", help="Candidates to request"),
    target: Optional[int] = typer.Option(
        None, "--target", help="Skip the fetch at this many unseen images"
    ),
    config: Optional[str] = ConfigOption,
    client_id: Optional[str] = ClientIdOption,
    ledger: Optional[str] = LedgerOption,
    cache_dir: Optional[str] = CacheDirOption,
    verbose: bool = VerboseOption,
    json_logs: bool = JsonLogsOption,
) -> None:
    """Top up the cache from the random-photo endpoint."""
    configure_logging(verbose, json_logs)
    try:
        cfg = _load(
            config, client_id, ledger, cache_dir,
            {"image_count": count, "target_unused_count": target, "debug_logging": verbose},
        )
        with UnsplashImageCache.from_config(cfg) as cache:
            cache.status.subscribe(_print_status)
            result = cache.refill()
    except Exception as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        if verbose:
            raise
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"State: {result.state.value}\n"
            f"Fetched: {result.fetched}\n"
            f"Already cached: {result.already_cached}\n"
            f"Downloaded: {result.succeeded}/{result.queued}",
            title="Refill Summary",
        )
    )
    if result.state == RefillState.FAILED:
        raise typer.Exit(code=1)


@app.command("next")
def next_image(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the image bytes to this file"
    ),
    config: Optional[str] = ConfigOption,
    client_id: Optional[str] = ClientIdOption,
    ledger: Optional[str] = LedgerOption,
    cache_dir: Optional[str] = CacheDirOption,
    verbose: bool = VerboseOption,
) -> None:
    """Hand out the least recently shown image."""
    configure_logging(verbose)
    try:
        cfg = _load(config, client_id, ledger, cache_dir)
        with UnsplashImageCache.from_config(cfg) as cache:
            selection = cache.select_unseen()
    except Exception as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(code=1)

    if selection is None:
        console.print("[yellow]No cached image available[/yellow]")
        raise typer.Exit(code=1)

    record = selection.record
    if output is not None:
        output.write_bytes(selection.data)
    console.print(
        Panel(
            f"Id: {record.id}\n"
            f"Title: {record.title or '-'}\n"
            f"By: {record.publisher_display_name or '-'} ({record.publisher_human_url or '-'})\n"
            f"Photo: {record.image_human_url}\n"
            f"Bytes: {len(selection.data)}" + (f"\nSaved to: {output}" if output else ""),
            title="Selected Image",
        )
    )


@app.command("list")
def list_records(
    config: Optional[str] = ConfigOption,
    client_id: Optional[str] = ClientIdOption,
    ledger: Optional[str] = LedgerOption,
    cache_dir: Optional[str] = CacheDirOption,
) -> None:
    """List every ledger record."""
    try:
        cfg = _load(config, client_id, ledger, cache_dir)
        with UnsplashImageCache.from_config(cfg) as cache:
            records = cache.debug_list_elements()
    except Exception as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Cached Records")
    table.add_column("Id", style="cyan")
    table.add_column("Downloaded", style="green")
    table.add_column("Last seen", style="yellow")
    table.add_column("Title")
    table.add_column("Publisher", style="magenta")
    for record in records:
        table.add_row(
            record.id,
            "✓" if record.downloaded else "✗",
            "never" if record.is_unseen else record.last_seen.isoformat(),
            record.title or "",
            record.publisher_display_name or "",
        )
    console.print(table)


@app.command()
def stats(
    config: Optional[str] = ConfigOption,
    client_id: Optional[str] = ClientIdOption,
    ledger: Optional[str] = LedgerOption,
    cache_dir: Optional[str] = CacheDirOption,
) -> None:
    """Show ledger statistics."""
    try:
        cfg = _load(config, client_id, ledger, cache_dir)
        with UnsplashImageCache.from_config(cfg) as cache:
            counts = cache.ledger.stats()
    except Exception as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Cache Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    for key, value in counts.items():
        table.add_row(key, str(value))
    table.add_row("target_unused_count", str(cfg.target_unused_count))
    console.print(table)


@app.command()
def verify(
    repair: bool = typer.Option(False, "--repair", help="Reset records whose image is missing"),
    config: Optional[str] = ConfigOption,
    client_id: Optional[str] = ClientIdOption,
    ledger: Optional[str] = LedgerOption,
    cache_dir: Optional[str] = CacheDirOption,
) -> None:
    """Cross-check the ledger against the image directory."""
    try:
        cfg = _load(config, client_id, ledger, cache_dir)
        with UnsplashImageCache.from_config(cfg) as cache:
            report = cache.check_consistency(repair=repair)
    except Exception as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"Records checked: {report.checked_records}\n"
            f"Missing images: {', '.join(report.missing_blobs) or '-'}\n"
            f"Orphan images: {', '.join(report.orphan_blobs) or '-'}\n"
            f"Repaired: {', '.join(report.repaired) or '-'}",
            title="Consistency",
        )
    )
    if report.ok:
        console.print("[green]✓ Consistent[/green]")
    elif not repair or len(report.repaired) < len(report.missing_blobs):
        raise typer.Exit(code=1)


@app.command()
def print_config(
    config: Optional[str] = ConfigOption,
    client_id: Optional[str] = ClientIdOption,
    raw: bool = typer.Option(False, "--raw", help="Raw JSON"),
) -> None:
    """Print merged effective config (client id masked)."""
    try:
        cfg = load_config(path=config, cli_overrides={"client_id": client_id})
    except Exception as e:
        console.print(f"[red]✗ Error: {e}[/red]")
        raise typer.Exit(code=1)

    data = cfg.model_dump(mode="json")
    data["client_id"] = "***masked***"
    if raw:
        typer.echo(json.dumps(data, indent=2))
    else:
        console.print(Panel(json.dumps(data, indent=2), title="UnsplashCache Config", expand=False))


@app.command()
def validate_config(
    config: str = typer.Argument(..., help="Path to config file"),
) -> None:
    """Validate a config file."""
    try:
        validate_config_file(config)
        console.print("[green]✓ Config valid[/green]")
    except Exception as e:
        console.print(f"[red]✗ Invalid: {e}[/red]")
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
