"""
Content-addressed image cache.

Downloads each referenced image once per run and names the local copy
after a hash of its bytes, so the same picture reachable under several
(expiring, signed) Notion URLs is stored once.
"""

import hashlib
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Iterable, Union
from urllib.parse import urlparse

import requests
from rich.console import Console

console = Console()

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "svg"}
DEFAULT_EXTENSION = "jpg"
DIGEST_LENGTH = 12


def image_extension(locator: str) -> str:
    """Extension from the URL path, ignoring the query string."""
    suffix = Path(urlparse(locator).path).suffix.lstrip(".").lower()
    return suffix if suffix in IMAGE_EXTENSIONS else DEFAULT_EXTENSION


class AssetCache:
    """
    Run-scoped locator → local path cache backed by content hashing.

    Thread-safe: concurrent lookups of the same locator are serialized so
    only the first one downloads; different locators download in parallel.
    """

    def __init__(
        self,
        fetch_bytes: Callable[[str], Iterable[bytes]],
        site_root: Path,
        debug: bool = False,
    ):
        """
        Args:
            fetch_bytes: Streams a URL's content (e.g. ``NotionAPI.iter_bytes``).
            site_root: Directory the site is served from; returned paths are
                site-absolute paths relative to it.
            debug: Print cache hits.
        """
        self.fetch_bytes = fetch_bytes
        self.site_root = Path(site_root).resolve()
        self.debug = debug

        self._entries: dict[str, str] = {}
        self._by_digest: dict[tuple[Path, str], Path] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        self.downloads = 0

    def fetch(
        self,
        locator: str,
        page_slug: str,
        asset_index: Union[int, str],
        output_dir: Path,
    ) -> str:
        """
        Resolve a remote image to a local, site-absolute path.

        Args:
            locator: Remote URL of the image.
            page_slug: Slug of the page the image belongs to.
            asset_index: Position of the image in the page, or "cover"/"icon".
            output_dir: Directory the image is stored in.

        Returns:
            The local path, or ``locator`` itself if the download failed.
        """
        cached = self._entries.get(locator)
        if cached is not None:
            return cached

        with self._lock_for(locator):
            cached = self._entries.get(locator)
            if cached is not None:
                if self.debug:
                    console.print(f"[dim]  Image cache hit: {cached}[/dim]")
                return cached

            try:
                path = self._download(locator, page_slug, asset_index, Path(output_dir))
            except (requests.RequestException, OSError) as e:
                console.print(f"[yellow]Warning: Failed to download image {locator}: {e}[/yellow]")
                return locator

            local = self._public_path(path)
            self._entries[locator] = local
            return local

    def _lock_for(self, locator: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(locator, threading.Lock())

    def _download(
        self,
        locator: str,
        page_slug: str,
        asset_index: Union[int, str],
        output_dir: Path,
    ) -> Path:
        """Stream to a temp file while hashing, then promote or discard it."""
        output_dir.mkdir(parents=True, exist_ok=True)

        digest = hashlib.md5()
        fd, tmp_name = tempfile.mkstemp(dir=output_dir, prefix=".download-")
        tmp_path = Path(tmp_name)

        try:
            with os.fdopen(fd, "wb") as f:
                for chunk in self.fetch_bytes(locator):
                    digest.update(chunk)
                    f.write(chunk)

            short_digest = digest.hexdigest()[:DIGEST_LENGTH]
            filename = f"{page_slug}-{asset_index}-{short_digest}.{image_extension(locator)}"
            target = output_dir / filename

            with self._guard:
                self.downloads += 1
                known = self._by_digest.get((output_dir, short_digest))
                if known is not None and known.exists():
                    target = known
                elif target.exists():
                    self._by_digest[(output_dir, short_digest)] = target
                else:
                    os.replace(tmp_path, target)
                    self._by_digest[(output_dir, short_digest)] = target
                    console.print(f"  📷 Downloaded image: {filename}")
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

        return target

    def _public_path(self, path: Path) -> str:
        relative = os.path.relpath(path, self.site_root)
        return "/" + relative.replace(os.sep, "/")

    def __len__(self) -> int:
        return len(self._entries)
