"""Unit tests for notion_ssg.slugs."""

import pytest

from notion_ssg.config import SlugRule
from notion_ssg.slugs import build_slug, render_permalink, slugify
from tests.helpers import make_page, rich_text_prop

PAGE_ID = "1a2b3c4d-0000-4000-8000-00000000abcd"


class TestSlugify:
    """Test cases for slugify()."""

    @pytest.mark.parametrize("value,expected", [
        ("My First Post", "my-first-post"),
        ("SSH – Secure Shell", "ssh-secure-shell"),
        ("Git & GitHub", "git-github"),
        ("Crème brûlée (v2.0)", "creme-brulee-v20"),
        ("  --hello__world--  ", "hello-world"),
        ("What's new? *Everything*!", "whats-new-everything"),
        ("user@example.com/path", "userexamplecompath"),
    ])
    def test_examples(self, value, expected):
        assert slugify(value) == expected

    def test_preserves_case_when_not_lowering(self):
        assert slugify("My First Post", lower=False) == "My-First-Post"

    def test_only_punctuation_is_empty(self):
        assert slugify("?!*") == ""


class TestBuildSlug:
    """Test cases for build_slug()."""

    def test_from_title_by_default(self):
        page = make_page(PAGE_ID, title="My First Post")
        assert build_slug(page, SlugRule()) == "my-first-post"

    def test_empty_title_falls_back_to_id(self):
        page = make_page(PAGE_ID, title="")
        assert build_slug(page, SlugRule()) == PAGE_ID

    def test_unsluggable_title_falls_back_to_id(self):
        page = make_page(PAGE_ID, title="???")
        assert build_slug(page, SlugRule()) == PAGE_ID

    def test_from_id(self):
        page = make_page(PAGE_ID, title="Ignored")
        assert build_slug(page, SlugRule(from_="id")) == PAGE_ID

    def test_from_property(self):
        page = make_page(PAGE_ID, title="Title", properties={"Slug": rich_text_prop("Custom Slug")})
        assert build_slug(page, SlugRule(from_="Slug")) == "custom-slug"

    def test_from_list_property_joins_values(self):
        tags = {"type": "multi_select", "multi_select": [{"name": "Python"}, {"name": "Tips"}]}
        page = make_page(PAGE_ID, title="Title", properties={"Tags": tags})
        assert build_slug(page, SlugRule(from_="Tags")) == "python-tips"

    def test_missing_property_with_title_fallback(self):
        page = make_page(PAGE_ID, title="Fallback Title")
        assert build_slug(page, SlugRule(from_="Slug", fallback="title")) == "fallback-title"

    def test_missing_property_and_title_uses_id(self):
        page = make_page(PAGE_ID, title="")
        assert build_slug(page, SlugRule(from_="Slug", fallback="title")) == PAGE_ID

    def test_missing_property_with_id_fallback(self):
        page = make_page(PAGE_ID, title="Has Title")
        assert build_slug(page, SlugRule(from_="Slug", fallback="id")) == PAGE_ID

    def test_keeps_case_when_lower_disabled(self):
        page = make_page(PAGE_ID, title="Hello World")
        assert build_slug(page, SlugRule(lower=False)) == "Hello-World"

    def test_deterministic(self):
        page = make_page(PAGE_ID, title="Stable Title")
        assert build_slug(page, SlugRule()) == build_slug(page, SlugRule())


class TestRenderPermalink:
    """Test cases for render_permalink()."""

    def test_substitutes_slug(self):
        assert render_permalink("/blog/{slug}/", "my-post") == "/blog/my-post/"

    def test_other_placeholders_untouched(self):
        assert render_permalink("/{year}/{slug}.html", "x") == "/{year}/x.html"
