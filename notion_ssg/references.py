"""
Cross-page reference resolution.

Pass 1 fills a ReferenceMap with every page of every source. Pass 2
rewrites each page body: Notion-hosted images become local copies and
links to known Notion pages become local permalinks.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional
from urllib.parse import urlparse

from rich.console import Console

from .assets import AssetCache

console = Console()

# ![alt](url "title")
IMAGE_LINK = re.compile(r'!\[[^\]]*\]\((?P<url>[^)\s]+)(?:\s+"[^"]*")?\)')

# [text](url "title"), where text may itself hold an image: [![alt](img)](url)
PAGE_LINK = re.compile(
    r'(?<!!)\[(?:[^\[\]]|!\[[^\]]*\]\([^)]*\))*\]\((?P<url>[^)\s]+)(?:\s+"[^"]*")?\)'
)

# Hosts that serve files uploaded to Notion
ASSET_HOST = re.compile(r"notion|s3[.-]us-west", re.IGNORECASE)

# Fenced code blocks and inline code spans; links inside them are literal text
FENCED_CODE = re.compile(r"^[ \t]*```.*?(?:^[ \t]*```[^\n]*$|\Z)", re.MULTILINE | re.DOTALL)
INLINE_CODE = re.compile(r"`[^`\n]+`")

PAGE_HOST = re.compile(r"^(?:www\.)?notion\.so$|\.notion\.site$", re.IGNORECASE)
PAGE_ID = re.compile(
    r"(?:^|-)([0-9a-f]{32}|[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})$",
    re.IGNORECASE,
)


def normalize_page_id(page_id: str) -> str:
    return page_id.replace("-", "").lower()


def page_id_from_url(url: str) -> Optional[str]:
    """
    Extract the page ID from a Notion page link.

    Handles https://www.notion.so/<id>, https://www.notion.so/ws/Title-<id>,
    https://x.notion.site/Title-<id> and site-relative /<id> links.
    """
    parsed = urlparse(url)
    if parsed.netloc:
        if parsed.scheme not in ("http", "https") or not PAGE_HOST.search(parsed.netloc):
            return None
    elif not parsed.path.startswith("/"):
        return None

    last_segment = parsed.path.rstrip("/").rsplit("/", 1)[-1]
    match = PAGE_ID.search(last_segment)
    return normalize_page_id(match.group(1)) if match else None


def is_asset_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(ASSET_HOST.search(parsed.netloc))


def code_spans(body: str) -> list[tuple[int, int]]:
    """(start, end) offsets of fenced blocks and inline code spans outside them."""
    fenced = [match.span() for match in FENCED_CODE.finditer(body)]
    inline = [
        match.span()
        for match in INLINE_CODE.finditer(body)
        if not _within(match.start(), fenced)
    ]
    return sorted(fenced + inline)


def _within(offset: int, spans: list[tuple[int, int]]) -> bool:
    return any(start <= offset < end for start, end in spans)


class ReferenceMap:
    """
    Page ID → local permalink, across all sources.

    Written during pass 1, then frozen; pass 2 only reads it.
    """

    def __init__(self):
        self._permalinks: dict[str, str] = {}
        self._frozen = False

    def add(self, page_id: str, permalink: str) -> None:
        if self._frozen:
            raise RuntimeError("Reference map is frozen; pages must be added during enumeration")

        key = normalize_page_id(page_id)
        existing = self._permalinks.get(key)
        if existing is not None and existing != permalink:
            console.print(
                f"[yellow]Warning: page {key} enumerated twice; keeping {existing}[/yellow]"
            )
            return
        self._permalinks[key] = permalink

    def freeze(self) -> "ReferenceMap":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, page_id: str) -> Optional[str]:
        return self._permalinks.get(normalize_page_id(page_id))

    def __contains__(self, page_id: str) -> bool:
        return normalize_page_id(page_id) in self._permalinks

    def __len__(self) -> int:
        return len(self._permalinks)


@dataclass(frozen=True)
class _Replacement:
    start: int
    end: int
    text: str


class LinkRewriter:
    """Rewrites the link targets of one page body."""

    def __init__(
        self,
        reference_map: ReferenceMap,
        asset_cache: AssetCache,
        debug: bool = False,
    ):
        if not reference_map.frozen:
            raise RuntimeError("Page bodies can only be rewritten once enumeration is complete")

        self.reference_map = reference_map
        self.asset_cache = asset_cache
        self.debug = debug

    def rewrite(self, body: str, page_slug: str, images_dir: Path) -> str:
        """
        Return ``body`` with Notion images and Notion page links localized.

        Only the URL part of each link is replaced. Replacements are
        collected in one scan and applied back to front, so earlier edits
        never shift the offsets of later ones.
        """
        replacements = sorted(
            self._collect(body, page_slug, images_dir),
            key=lambda r: r.start,
            reverse=True,
        )

        for replacement in replacements:
            body = body[: replacement.start] + replacement.text + body[replacement.end :]

        return body

    def _collect(self, body: str, page_slug: str, images_dir: Path) -> Iterator[_Replacement]:
        literal = code_spans(body)

        image_index = 0
        for match in IMAGE_LINK.finditer(body):
            url = match.group("url")
            if not is_asset_url(url) or _within(match.start("url"), literal):
                continue

            local = self.asset_cache.fetch(url, page_slug, image_index, images_dir)
            image_index += 1
            if local != url:
                yield _Replacement(match.start("url"), match.end("url"), local)

        for match in PAGE_LINK.finditer(body):
            url = match.group("url")
            page_id = page_id_from_url(url)
            if page_id is None or _within(match.start("url"), literal):
                continue

            permalink = self.reference_map.get(page_id)
            if permalink is None:
                if self.debug:
                    console.print(f"[dim]  Unresolved page link left as is: {url}[/dim]")
                continue

            yield _Replacement(match.start("url"), match.end("url"), permalink)
