"""
Markdown file output: YAML front matter followed by the page body.
"""

from pathlib import Path

import yaml

from .assets import AssetCache
from .config import SourceConfig
from .notion_api import NotionPage
from .properties import first_title_text, normalize_property


def _is_empty(value) -> bool:
    return value is None or value == "" or value == []


def render_front_matter(front: dict) -> str:
    """Serialize front matter as a ``---`` delimited YAML block, keys in insertion order."""
    dumped = yaml.safe_dump(
        front,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=1000,
    )
    return f"---\n{dumped}---\n"


class PageWriter:
    """Writes one Markdown file per page."""

    def __init__(self, asset_cache: AssetCache):
        self.asset_cache = asset_cache

    def front_matter(
        self,
        source: SourceConfig,
        page: NotionPage,
        slug: str,
        permalink: str,
    ) -> dict:
        """
        Build a page's front matter.

        Fixed keys come first, then the source's static extras, then every
        non-excluded property with a non-empty value, then cover/icon images.
        """
        front = {
            "layout": source.layout,
            "title": first_title_text(page.properties) or slug,
            "permalink": permalink,
            "notionPageId": page.id,
        }
        front.update(source.front_matter)

        for name, prop in page.properties.items():
            if name in source.exclude_properties:
                continue
            value = normalize_property(prop)
            if not _is_empty(value):
                front[name.strip()] = value

        if page.cover:
            front["coverImage"] = self.asset_cache.fetch(page.cover, slug, "cover", source.images_dir)
        if page.icon:
            front["iconImage"] = self.asset_cache.fetch(page.icon, slug, "icon", source.images_dir)

        return front

    def write(
        self,
        source: SourceConfig,
        page: NotionPage,
        slug: str,
        permalink: str,
        body: str,
    ) -> Path:
        """
        Write ``{output_dir}/{slug}.md``.

        Returns:
            Absolute path of the written file.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        content = render_front_matter(self.front_matter(source, page, slug, permalink)) + body

        source.output_dir.mkdir(parents=True, exist_ok=True)
        out_path = source.output_dir / f"{slug}.md"

        with open(out_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)

        return out_path.resolve()
