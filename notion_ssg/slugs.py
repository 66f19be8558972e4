"""
Slug and permalink generation.

Examples:
    "My First Post" -> "my-first-post"
    "SSH – Secure Shell" -> "ssh-secure-shell"
    "Git & GitHub" -> "git-github"
    "Crème brûlée (v2.0)" -> "creme-brulee-v20"
"""

import re
import unicodedata

from .config import SlugRule
from .notion_api import NotionPage
from .properties import first_title_text, normalize_property

_DASHES = re.compile(r"[–—&]")
_REMOVED = re.compile(r"[*+~.()'\":@/?!,]")
_UNSAFE = re.compile(r"[^\w\s-]")
_SEPARATORS = re.compile(r"[\s_]+")
_REPEATED_DASH = re.compile(r"-+")


def slugify(text: str, lower: bool = True) -> str:
    """
    Turn arbitrary text into a URL-safe slug.

    Accents are folded to ASCII, a fixed punctuation set is dropped, and
    runs of whitespace/underscores/dashes collapse to a single dash.
    """
    slug = _DASHES.sub("-", str(text or ""))
    slug = unicodedata.normalize("NFKD", slug).encode("ascii", "ignore").decode("ascii")
    slug = _REMOVED.sub("", slug)
    slug = _UNSAFE.sub("", slug)
    slug = _SEPARATORS.sub("-", slug)
    slug = _REPEATED_DASH.sub("-", slug).strip("-")

    return slug.lower() if lower else slug


def _slug_base(page: NotionPage, rule: SlugRule) -> str:
    if rule.from_ == "title":
        return first_title_text(page.properties) or ""
    if rule.from_ == "id":
        return page.id

    value = normalize_property(page.properties.get(rule.from_))
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(str(item) for item in value)
    return str(value)


def build_slug(page: NotionPage, rule: SlugRule) -> str:
    """
    Derive a page's slug.

    Falls back to the page ID (or to title-then-ID, depending on the
    rule) when the configured base is blank. The result is never empty.
    """
    base = _slug_base(page, rule)

    if not base.strip():
        if rule.fallback == "id":
            base = page.id
        else:
            base = first_title_text(page.properties) or page.id

    return slugify(base, lower=rule.lower) or slugify(page.id, lower=rule.lower)


def render_permalink(template: str, slug: str) -> str:
    """Substitute ``{slug}``; no other placeholders exist."""
    return template.replace("{slug}", slug)
