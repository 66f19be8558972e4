"""
Notion → Static Site Sync CLI

Usage:
    notion-to-ssg                     # Run full sync with notion.config.yml/json
    notion-to-ssg -c site.yml         # Use a specific config file
    notion-to-ssg --workers 8         # Convert more pages in parallel
    notion-to-ssg check               # Validate the config without calling Notion
    notion-to-ssg version             # Show version
"""

import sys
import traceback
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import Config
from .errors import EnumerationError
from .sync_engine import SyncEngine

console = Console()


def _load_config(config_path: Optional[str], workers: Optional[int], debug: bool) -> Config:
    config = Config.load(Path(config_path) if config_path else None)
    if workers:
        config.workers = workers
    if debug:
        config.debug = True
    return config


@click.group(invoke_without_command=True)
@click.option("-c", "--config", "config_path", type=click.Path(dir_okay=False),
              help="Config file (default: notion.config.json/.yaml/.yml)")
@click.option("--workers", type=click.IntRange(min=1), help="Pages converted in parallel per database")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx, config_path: Optional[str], workers: Optional[int], debug: bool):
    """
    Notion → Static Site Sync

    Exports Notion databases to Markdown files with YAML front matter.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["workers"] = workers
    ctx.obj["debug"] = debug

    if ctx.invoked_subcommand is None:
        ctx.invoke(sync)


@cli.command()
@click.pass_context
def sync(ctx):
    """Export every configured database."""
    debug = ctx.obj.get("debug", False)

    try:
        config = _load_config(ctx.obj.get("config_path"), ctx.obj.get("workers"), debug)
        results = SyncEngine(config).sync()
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        console.print("[dim]Make sure NOTION_TOKEN is set (or in .env) and the config file is valid.[/dim]")
        sys.exit(1)
    except EnumerationError as e:
        console.print(f"[red]Sync aborted:[/red] {e}")
        if debug:
            traceback.print_exception(e.cause)
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Sync cancelled.[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        if debug:
            traceback.print_exc()
        sys.exit(1)

    if not all(result.success for result in results):
        sys.exit(1)

    console.print("[green]✨ Export completed successfully![/green]")


@cli.command()
@click.pass_context
def check(ctx):
    """Validate the configuration and list the databases to export."""
    try:
        config = _load_config(ctx.obj.get("config_path"), ctx.obj.get("workers"), ctx.obj.get("debug"))
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    table = Table(title="Configured Databases")
    table.add_column("Database", style="cyan")
    table.add_column("Output", style="green")
    table.add_column("Images", style="yellow")
    table.add_column("Permalink", style="blue")
    table.add_column("Policy")

    for source in config.sources:
        table.add_row(
            source.database_id,
            str(source.output_dir),
            str(source.images_dir),
            source.permalink,
            "clean-first" if source.clean_before_sync else "diff-after",
        )

    console.print(table)


@cli.command()
def version():
    """Show version information."""
    console.print(f"Notion → Static Site Sync v{__version__}")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
