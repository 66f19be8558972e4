"""
Stale file removal for a source's output directory.

Two policies:
- clean-first: delete existing Markdown (and the images, when the image
  directory belongs to this source alone) before writing anything.
- diff-after: after writing, delete the Markdown files this run did not write.

Both leave the directory's Markdown set equal to the pages just written.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from rich.console import Console

from .config import SourceConfig

console = Console()


@dataclass
class ReconcileReport:
    """Files a source's run produced and removed."""

    written: list[Path] = field(default_factory=list)
    deleted: list[Path] = field(default_factory=list)


def markdown_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(path.resolve() for path in directory.glob("*.md") if path.is_file())


def _files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(path.resolve() for path in directory.iterdir() if path.is_file())


class DirectoryReconciler:
    """Applies one source's reconciliation policy around its page writes."""

    def __init__(self, source: SourceConfig, clear_images: bool):
        """
        Args:
            source: The source being written.
            clear_images: Whether clean-first may empty the image directory
                (only when no other source shares it).
        """
        self.source = source
        self.clear_images = clear_images
        self._removed: list[Path] = []
        self._existing: list[Path] = []

    def prepare(self) -> None:
        """Run before the first page is written."""
        self.source.output_dir.mkdir(parents=True, exist_ok=True)
        self._existing = markdown_files(self.source.output_dir)

        if not self.source.clean_before_sync:
            return

        doomed = list(self._existing)
        if self.clear_images:
            doomed.extend(_files(self.source.images_dir))

        for path in doomed:
            path.unlink()
            self._removed.append(path)

        if doomed:
            console.print(f"[dim]Cleared {len(doomed)} files before sync[/dim]")

    def finish(self, written: Iterable[Path]) -> ReconcileReport:
        """
        Run after every page is written.

        Returns:
            The files written and the files gone since the previous run.
        """
        written = list(dict.fromkeys(Path(path).resolve() for path in written))
        keep = set(written)

        if self.source.clean_before_sync:
            deleted = [path for path in self._removed if path not in keep and not path.exists()]
        else:
            deleted = []
            for path in self._existing:
                if path not in keep and path.exists():
                    path.unlink()
                    deleted.append(path)
                    console.print(f"[yellow]✗ Deleted stale file:[/yellow] {path}")

        return ReconcileReport(written=written, deleted=deleted)
