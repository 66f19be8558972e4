"""Unit tests for notion_ssg.page_writer."""

import pytest
import yaml

from notion_ssg.config import SourceConfig
from notion_ssg.page_writer import PageWriter, render_front_matter
from tests.helpers import make_page, rich_text_prop

PAGE_ID = "11111111-1111-1111-1111-111111111111"


class FakeAssetCache:
    def __init__(self):
        self.calls = []

    def fetch(self, locator, page_slug, asset_index, output_dir):
        self.calls.append((locator, page_slug, asset_index))
        return f"/images/notion/{page_slug}-{asset_index}.png"


@pytest.fixture
def source(tmp_path):
    return SourceConfig.from_dict(
        {
            "databaseId": "a" * 32,
            "srcDir": "src/blog",
            "basePath": "/blog",
            "layout": "post.njk",
            "excludeProperties": ["Secret"],
            "frontMatter": {"section": "blog"},
        },
        tmp_path,
    )


def split_front_matter(content):
    _, front, body = content.split("---\n", 2)
    return yaml.safe_load(front), body


def sample_page(**kwargs):
    properties = {
        "Tags": {"type": "multi_select", "multi_select": [{"name": "a"}, {"name": "b"}]},
        "Draft": {"type": "checkbox", "checkbox": False},
        "Summary": rich_text_prop(""),
        "Secret": rich_text_prop("hidden"),
        " Spaced ": {"type": "number", "number": 2},
        "Unsupported": {"type": "button", "button": {}},
    }
    return make_page(PAGE_ID, title="My First Post", properties=properties, **kwargs)


class TestFrontMatter:
    """Test cases for PageWriter.front_matter()."""

    def test_key_order_and_values(self, source):
        front = PageWriter(FakeAssetCache()).front_matter(
            source, sample_page(), "my-first-post", "/blog/my-first-post/"
        )

        assert list(front) == [
            "layout", "title", "permalink", "notionPageId", "section",
            "Name", "Tags", "Draft", "Spaced",
        ]
        assert front["layout"] == "post.njk"
        assert front["title"] == "My First Post"
        assert front["permalink"] == "/blog/my-first-post/"
        assert front["notionPageId"] == PAGE_ID
        assert front["Tags"] == ["a", "b"]
        assert front["Draft"] is False
        assert front["Spaced"] == 2

    def test_title_falls_back_to_slug(self, source):
        page = make_page(PAGE_ID, title="")
        front = PageWriter(FakeAssetCache()).front_matter(source, page, PAGE_ID, f"/blog/{PAGE_ID}/")
        assert front["title"] == PAGE_ID

    def test_cover_and_icon_resolved_through_cache(self, source):
        cache = FakeAssetCache()
        page = sample_page(cover="https://example.com/cover.png", icon="https://s3.us-west-2.amazonaws.com/i.png")

        front = PageWriter(cache).front_matter(source, page, "my-first-post", "/blog/my-first-post/")

        assert front["coverImage"] == "/images/notion/my-first-post-cover.png"
        assert front["iconImage"] == "/images/notion/my-first-post-icon.png"
        assert [c[2] for c in cache.calls] == ["cover", "icon"]
        assert list(front)[-2:] == ["coverImage", "iconImage"]


class TestWrite:
    """Test cases for PageWriter.write()."""

    def test_writes_front_matter_and_body(self, source):
        path = PageWriter(FakeAssetCache()).write(
            source, sample_page(), "my-first-post", "/blog/my-first-post/", "Hello\n"
        )

        assert path == (source.output_dir / "my-first-post.md").resolve()
        content = path.read_text(encoding="utf-8")
        assert content.startswith("---\nlayout: post.njk\ntitle: My First Post\n")
        front, body = split_front_matter(content)
        assert front["title"] == "My First Post"
        assert body == "Hello\n"

    def test_rewrite_is_byte_identical(self, source):
        writer = PageWriter(FakeAssetCache())
        path = writer.write(source, sample_page(), "my-first-post", "/blog/my-first-post/", "Body\n")
        first = path.read_bytes()

        writer.write(source, sample_page(), "my-first-post", "/blog/my-first-post/", "Body\n")

        assert path.read_bytes() == first

    def test_empty_body(self, source):
        path = PageWriter(FakeAssetCache()).write(source, sample_page(), "p", "/blog/p/", "")
        assert path.read_text(encoding="utf-8").endswith("---\n")


class TestRenderFrontMatter:
    """Test cases for render_front_matter()."""

    def test_unicode_and_order_preserved(self):
        rendered = render_front_matter({"title": "Crème brûlée", "a": 1, "B": [True]})
        assert rendered == "---\ntitle: Crème brûlée\na: 1\nB:\n- true\n---\n"
