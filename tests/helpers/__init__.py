"""Test helpers: Notion payload builders and a fake Notion client."""

from .notion_fixtures import (
    FakeNotionAPI,
    block,
    image,
    make_page,
    page_payload,
    paragraph,
    rich_text_prop,
    text,
    title_prop,
    to_blocks,
)

__all__ = [
    "FakeNotionAPI",
    "block",
    "image",
    "make_page",
    "page_payload",
    "paragraph",
    "rich_text_prop",
    "text",
    "title_prop",
    "to_blocks",
]
