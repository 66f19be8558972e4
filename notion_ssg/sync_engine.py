"""
Main sync engine for Notion → static site synchronization.

Orchestrates a two-pass run:
- Pass 1 (enumerate): list every page of every source, compute slugs and
  permalinks, and fill the reference map.
- Pass 2 (write): convert, rewrite and write each page, then reconcile
  each source's output directory.

Pass 2 never starts before pass 1 has finished for every source, since
a page in one database may link to a page in another.
"""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .assets import AssetCache
from .config import Config, SourceConfig
from .errors import EnumerationError
from .markdown_converter import MarkdownConverter
from .notion_api import NotionAPI, NotionPage
from .page_writer import PageWriter
from .reconciler import DirectoryReconciler
from .references import LinkRewriter, ReferenceMap
from .slugs import build_slug, render_permalink

console = Console()


class SyncStage(Enum):
    """Where a run currently is."""
    IDLE = "idle"
    LOAD_CONFIG = "load_config"
    ENUMERATE = "enumerate"
    WRITE = "write"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PagePlan:
    """A page with its slug and permalink fixed in pass 1."""

    page: NotionPage
    slug: str
    permalink: str


@dataclass
class SourcePlan:
    """Everything pass 1 learned about one source."""

    source: SourceConfig
    title: str
    pages: list[PagePlan] = field(default_factory=list)


@dataclass
class SourceResult:
    """Result of syncing one source."""

    source_id: str
    source_title: str
    page_count: int = 0
    files_written: list[Path] = field(default_factory=list)
    files_deleted: list[Path] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class SyncEngine:
    """
    Two-pass orchestrator for Notion → Markdown export.

    The reference map and asset cache live for one run only and are
    passed explicitly from pass 1 into pass 2.
    """

    def __init__(self, config: Config, notion_api: Optional[NotionAPI] = None):
        """
        Initialize sync engine.

        Args:
            config: Configuration instance.
            notion_api: Remote client; built from the config's token if omitted.
        """
        self.config = config
        self.notion_api = notion_api or NotionAPI(config.notion_token)
        self.markdown_converter = MarkdownConverter()
        self.stage = SyncStage.IDLE

    def sync(self) -> list[SourceResult]:
        """
        Perform a full synchronization.

        Returns:
            One SourceResult per configured source, in config order.

        Raises:
            ConfigError: If the configuration is unusable (no remote call made).
            EnumerationError: If listing any source fails (nothing written).

        Whatever escapes, the engine is left in ``SyncStage.FAILED``.
        """
        console.print("\n[bold blue]🔄 Starting Notion → Markdown Sync[/bold blue]\n")

        try:
            self.stage = SyncStage.LOAD_CONFIG
            self.config.validate()

            self.stage = SyncStage.ENUMERATE
            plans, reference_map = self.enumerate_sources()

            self.stage = SyncStage.WRITE
            asset_cache = AssetCache(
                self.notion_api.iter_bytes,
                site_root=self.config.site_root,
                debug=self.config.debug,
            )
            results = self.write_sources(plans, reference_map, asset_cache)
        except (Exception, KeyboardInterrupt):
            self.stage = SyncStage.FAILED
            raise

        self.stage = SyncStage.DONE
        self._print_summary(results)
        return results

    # =========================================================================
    # Pass 1
    # =========================================================================

    def enumerate_sources(self) -> tuple[list[SourcePlan], ReferenceMap]:
        """
        List every page of every source and build the reference map.

        Returns:
            The per-source plans and the frozen reference map.
        """
        reference_map = ReferenceMap()
        plans = []

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            for source in self.config.sources:
                task = progress.add_task(f"Enumerating database {source.database_id}...", total=None)
                plan = self._enumerate_source(source)
                progress.update(task, description=f"{plan.title}: {len(plan.pages)} pages")

                for page_plan in plan.pages:
                    reference_map.add(page_plan.page.id, page_plan.permalink)
                plans.append(plan)

        return plans, reference_map.freeze()

    def _enumerate_source(self, source: SourceConfig) -> SourcePlan:
        try:
            title = self.notion_api.get_database_title(source.database_id)
            pages = self.notion_api.query_database(source.database_id)
        except Exception as e:
            console.print(f"[red]Failed to enumerate database {source.database_id}: {e}[/red]")
            raise EnumerationError(source.database_id, e) from e

        plan = SourcePlan(source=source, title=title)
        for page in pages:
            slug = build_slug(page, source.slug)
            plan.pages.append(PagePlan(page, slug, render_permalink(source.permalink, slug)))

        duplicates = [slug for slug, count in Counter(p.slug for p in plan.pages).items() if count > 1]
        for slug in duplicates:
            console.print(
                f"[yellow]Warning: several pages in {title} share the slug '{slug}'; "
                f"only the last one is kept[/yellow]"
            )

        # Pages are written concurrently, so a shared file name is settled here
        last = {page_plan.slug: i for i, page_plan in enumerate(plan.pages)}
        plan.pages = [page_plan for i, page_plan in enumerate(plan.pages) if last[page_plan.slug] == i]

        return plan

    # =========================================================================
    # Pass 2
    # =========================================================================

    def write_sources(
        self,
        plans: list[SourcePlan],
        reference_map: ReferenceMap,
        asset_cache: AssetCache,
    ) -> list[SourceResult]:
        """Write and reconcile every source. A failing source does not stop the others."""
        rewriter = LinkRewriter(reference_map, asset_cache, debug=self.config.debug)
        writer = PageWriter(asset_cache)
        shared = Counter(plan.source.images_dir for plan in plans)

        results = []
        for plan in plans:
            clear_images = plan.source.images_dir_explicit and shared[plan.source.images_dir] == 1
            results.append(self._write_source(plan, rewriter, writer, clear_images))
        return results

    def _write_source(
        self,
        plan: SourcePlan,
        rewriter: LinkRewriter,
        writer: PageWriter,
        clear_images: bool,
    ) -> SourceResult:
        source = plan.source
        result = SourceResult(
            source_id=source.database_id,
            source_title=plan.title,
            page_count=len(plan.pages),
        )
        console.print(
            f"[cyan]Exporting[/cyan] {len(plan.pages)} pages from {plan.title} → {source.output_dir}"
        )

        reconciler = DirectoryReconciler(source, clear_images=clear_images)
        try:
            reconciler.prepare()

            with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                written = list(
                    executor.map(
                        lambda page_plan: self._write_page(source, page_plan, rewriter, writer),
                        plan.pages,
                    )
                )

            report = reconciler.finish(written)
        except OSError as e:
            console.print(f"[red]Failed to write {plan.title}: {e}[/red]")
            result.error = str(e)
            return result

        result.files_written = report.written
        result.files_deleted = report.deleted
        return result

    def _write_page(
        self,
        source: SourceConfig,
        page_plan: PagePlan,
        rewriter: LinkRewriter,
        writer: PageWriter,
    ) -> Path:
        body = self._page_body(page_plan.page)
        body = rewriter.rewrite(body, page_plan.slug, source.images_dir)

        out_path = writer.write(source, page_plan.page, page_plan.slug, page_plan.permalink, body)
        console.print(f"[green]✓[/green] {out_path}")
        return out_path

    def _page_body(self, page: NotionPage) -> str:
        """Markdown body of a page; empty when fetching or converting it fails."""
        try:
            blocks = self.notion_api.get_page_blocks(page.id)
            return self.markdown_converter.convert(blocks)
        except Exception as e:
            console.print(f"[yellow]Warning: Markdown conversion failed for page {page.id}: {e}[/yellow]")
            return ""

    def _print_summary(self, results: list[SourceResult]) -> None:
        """Print sync summary."""
        console.print("\n" + "=" * 50)
        console.print("[bold]Sync Summary[/bold]")
        console.print("=" * 50)

        table = Table(box=None)
        table.add_column("Database", style="cyan")
        table.add_column("Pages", style="white", justify="right")
        table.add_column("Written", style="green", justify="right")
        table.add_column("Deleted", style="yellow", justify="right")
        table.add_column("Status")

        for result in results:
            table.add_row(
                result.source_title,
                str(result.page_count),
                str(len(result.files_written)),
                str(len(result.files_deleted)),
                "✓" if result.success else f"[red]✗ {result.error}[/red]",
            )

        console.print(table)
        console.print("")


def run_sync(config: Config, notion_api: Optional[NotionAPI] = None) -> list[SourceResult]:
    """Run one sync over every configured source."""
    return SyncEngine(config, notion_api).sync()
