"""CLI entry point for podsync."""

import asyncio
import sys
from pathlib import Path

import typer
from pydantic import HttpUrl, ValidationError
from rich.console import Console
from rich.table import Table

from podsync.config.logging import setup_logging
from podsync.config.manager import ConfigManager
from podsync.config.schema import FeedConfig
from podsync.sync.orchestrator import FeedResult, SyncOrchestrator
from podsync.ui.display import SyncDisplay
from podsync.utils.errors import (
    ConfigError,
    FeedNotFoundError,
    PodsyncError,
)

app = typer.Typer(
    name="podsync",
    help="Download new podcast episodes from your feeds",
    invoke_without_command=True,
)
console = Console()
err_console = Console(stderr=True)


def _manager(ctx: typer.Context) -> ConfigManager:
    return ConfigManager(ctx.obj.get("config_dir") if ctx.obj else None)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose (DEBUG) logging"
    ),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Write logs to file"
    ),
    config_dir: Path | None = typer.Option(
        None, "--config-dir", help="Read config.yaml and feeds.yaml from this directory"
    ),
) -> None:
    """Podsync - keep local copies of podcast feeds in sync.

    Runs `sync` when no command is given.
    """
    # Initialize logging before any command runs
    setup_logging(verbose=verbose, log_file=log_file)
    ctx.obj = {"verbose": verbose, "log_file": log_file, "config_dir": config_dir}

    if ctx.invoked_subcommand is None:
        sync_command(ctx, print_paths=False, no_progress=False)


@app.command("version")
def show_version() -> None:
    """Show version information."""
    from podsync import __version__

    console.print(f"[bold cyan]podsync[/bold cyan] v{__version__}")


@app.command("sync")
def sync_command(
    ctx: typer.Context,
    print_paths: bool = typer.Option(
        False, "--print", help="Print the path of every downloaded episode to stdout"
    ),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Disable the live progress display"
    ),
) -> None:
    """Download new episodes for every configured feed.

    Examples:
        podsync sync

        podsync sync --print --no-progress | xargs -n1 echo
    """
    options = ctx.obj or {}
    try:
        global_config, feeds = _manager(ctx).resolve_feeds()
    except ConfigError as e:
        err_console.print(f"[red]✗[/red] {e}")
        sys.exit(1)

    if not options.get("verbose"):
        setup_logging(log_file=options.get("log_file"), level=global_config.log_level)

    if not feeds:
        err_console.print("[yellow]No feeds configured yet.[/yellow]")
        err_console.print("\nAdd a feed: [cyan]podsync add <url> --name <name>[/cyan]")
        return

    async def run_sync() -> list[FeedResult]:
        if no_progress:
            return await SyncOrchestrator(
                feeds,
                timeout=global_config.timeout_seconds,
                max_concurrent_feeds=global_config.max_concurrent_feeds,
            ).run()

        with SyncDisplay([feed.name for feed in feeds], console=err_console) as display:
            return await SyncOrchestrator(
                feeds,
                timeout=global_config.timeout_seconds,
                max_concurrent_feeds=global_config.max_concurrent_feeds,
                reporter_factory=display.reporter,
            ).run()

    results = asyncio.run(run_sync())

    if print_paths:
        for result in results:
            for path in result.downloaded:
                typer.echo(f'"{path}"')

    _print_summary(results)

    if any(result.status == "error" for result in results):
        sys.exit(1)


def _print_summary(results: list[FeedResult]) -> None:
    downloaded = sum(len(result.downloaded) for result in results)
    failed = [result for result in results if result.status == "error"]

    for result in failed:
        err_console.print(f"[red]✗[/red] {result.name}: {result.error}")

    summary = f"{downloaded} episode(s) downloaded from {len(results)} feed(s)"
    if failed:
        err_console.print(f"\n[yellow]{summary}, {len(failed)} failed[/yellow]")
    else:
        err_console.print(f"\n[green]✓[/green] {summary}")


@app.command("add")
def add_feed(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="RSS feed URL"),
    name: str = typer.Option(..., "--name", "-n", help="Feed identifier name"),
) -> None:
    """Add a new podcast feed.

    Examples:
        podsync add https://example.com/feed.rss --name my-podcast
    """
    try:
        manager = _manager(ctx)
        feed_config = FeedConfig(url=HttpUrl(url))
        manager.add_feed(name, feed_config)

        console.print(
            f"\n[green]✓[/green] Feed '[bold]{name}[/bold]' added successfully"
        )

    except ValidationError:
        console.print(f"[red]✗[/red] Invalid feed URL: {url}")
        sys.exit(1)
    except PodsyncError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(1)


@app.command("list")
def list_feeds(ctx: typer.Context) -> None:
    """List all configured podcast feeds."""
    try:
        feeds = _manager(ctx).list_feeds()

        if not feeds:
            console.print("[yellow]No feeds configured yet.[/yellow]")
            console.print(
                "\nAdd a feed: [cyan]podsync add <url> --name <name>[/cyan]"
            )
            return

        table = Table(title="[bold]Configured Podcast Feeds[/bold]")
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("URL", style="blue")
        table.add_column("Mode", style="green")

        for name, feed in sorted(feeds.items()):
            if feed.is_backlog:
                mode = f"backlog from {feed.backlog_start}, every {feed.backlog_interval}d"
            else:
                mode = "standard"
            table.add_row(name, str(feed.url), mode)

        console.print(table)
        console.print(f"\n[dim]Total: {len(feeds)} feed(s)[/dim]")

    except PodsyncError as e:
        console.print(f"[red]✗[/red] Error: {e}")
        sys.exit(1)


@app.command("remove")
def remove_feed(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Feed name to remove"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmation prompt"
    ),
) -> None:
    """Remove a podcast feed.

    Downloaded episodes and the feed's download history are kept.

    Examples:
        podsync remove my-podcast

        podsync remove my-podcast --force  # Skip confirmation
    """
    try:
        manager = _manager(ctx)

        try:
            feed = manager.get_feed(name)
        except FeedNotFoundError:
            console.print(f"[red]✗[/red] Feed '[bold]{name}[/bold]' not found")
            feeds = manager.list_feeds()
            if feeds:
                console.print("\nAvailable feeds:")
                for feed_name in sorted(feeds):
                    console.print(f"  • {feed_name}")
            sys.exit(1)

        if not force:
            console.print(f"\nFeed: [bold]{name}[/bold]")
            console.print(f"URL:  [dim]{feed.url}[/dim]")
            confirm: bool = typer.confirm("\nAre you sure you want to remove this feed?")
            if not confirm:
                console.print("[yellow]Cancelled[/yellow]")
                return

        manager.remove_feed(name)
        console.print(f"[green]✓[/green] Feed '[bold]{name}[/bold]' removed")

    except PodsyncError as e:
        console.print(f"[red]✗[/red] Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    app()
