"""Unit tests for notion_ssg.properties."""

import pytest

from notion_ssg.properties import first_title_text, normalize_property, rich_text_to_plain
from tests.helpers import rich_text_prop, text, title_prop


class TestRichText:
    """Test cases for rich text flattening."""

    def test_concatenates_runs_without_separator(self):
        """Runs are joined as-is, annotations ignored."""
        runs = [text("Hello "), text("bold", bold=True), text(" world")]
        assert rich_text_to_plain(runs) == "Hello bold world"

    def test_non_list_is_empty(self):
        assert rich_text_to_plain(None) == ""
        assert rich_text_to_plain("oops") == ""


class TestFirstTitleText:
    """Test cases for first_title_text()."""

    def test_returns_stripped_title(self):
        props = {"Tags": rich_text_prop("x"), "Name": title_prop("  My Post  ")}
        assert first_title_text(props) == "My Post"

    def test_empty_title_is_none(self):
        assert first_title_text({"Name": title_prop("")}) is None
        assert first_title_text({"Name": title_prop("   ")}) is None

    def test_no_properties(self):
        assert first_title_text(None) is None
        assert first_title_text({}) is None


class TestNormalizeScalars:
    """Test cases for scalar property variants."""

    @pytest.mark.parametrize("prop,expected", [
        (title_prop("Title"), "Title"),
        (rich_text_prop("Body"), "Body"),
        ({"type": "select", "select": {"name": "News"}}, "News"),
        ({"type": "select", "select": None}, None),
        ({"type": "status", "status": {"name": "Done"}}, "Done"),
        ({"type": "date", "date": {"start": "2024-05-01", "end": None}}, "2024-05-01"),
        ({"type": "date", "date": None}, None),
        ({"type": "checkbox", "checkbox": True}, True),
        ({"type": "checkbox", "checkbox": None}, False),
        ({"type": "number", "number": 0}, 0),
        ({"type": "number", "number": 3.5}, 3.5),
        ({"type": "url", "url": "https://example.com"}, "https://example.com"),
        ({"type": "email", "email": "a@example.com"}, "a@example.com"),
        ({"type": "phone_number", "phone_number": "+1 555"}, "+1 555"),
    ])
    def test_scalar_variants(self, prop, expected):
        assert normalize_property(prop) == expected


class TestNormalizeLists:
    """Test cases for list-like property variants."""

    def test_multi_select(self):
        prop = {"type": "multi_select", "multi_select": [{"name": "a"}, {"name": "b"}]}
        assert normalize_property(prop) == ["a", "b"]

    def test_people_prefers_name_then_email_then_id(self):
        prop = {"type": "people", "people": [
            {"id": "u1", "name": "Ada"},
            {"id": "u2", "person": {"email": "grace@example.com"}},
            {"id": "u3"},
            {},
        ]}
        assert normalize_property(prop) == ["Ada", "grace@example.com", "u3"]

    def test_files_keep_resolvable_urls(self):
        prop = {"type": "files", "files": [
            {"type": "file", "file": {"url": "https://s3/a.pdf"}},
            {"type": "external", "external": {"url": "https://example.com/b.png"}},
            {"type": "unknown"},
        ]}
        assert normalize_property(prop) == ["https://s3/a.pdf", "https://example.com/b.png"]

    def test_relation_ids(self):
        prop = {"type": "relation", "relation": [{"id": "p1"}, {"id": ""}, {"id": "p2"}]}
        assert normalize_property(prop) == ["p1", "p2"]


class TestNormalizeFormula:
    """Test cases for formula results."""

    @pytest.mark.parametrize("formula,expected", [
        ({"type": "string", "string": "hi"}, "hi"),
        ({"type": "number", "number": 42}, 42),
        ({"type": "boolean", "boolean": False}, False),
        ({"type": "date", "date": {"start": "2024-01-02"}}, "2024-01-02"),
        ({"type": "mystery"}, None),
    ])
    def test_formula_variants(self, formula, expected):
        assert normalize_property({"type": "formula", "formula": formula}) == expected


class TestNormalizeRollup:
    """Test cases for rollup results."""

    def test_number_and_date(self):
        assert normalize_property({"type": "rollup", "rollup": {"type": "number", "number": 7}}) == 7
        date_rollup = {"type": "rollup", "rollup": {"type": "date", "date": {"start": "2024-03-03"}}}
        assert normalize_property(date_rollup) == "2024-03-03"

    def test_array_dispatches_each_element(self):
        """Elements go through the top-level switch; nulls and unknown kinds are dropped."""
        prop = {"type": "rollup", "rollup": {"type": "array", "array": [
            title_prop("Post A"),
            {"type": "select", "select": None},
            {"type": "number", "number": 3},
            {"type": "unique_id", "unique_id": {"number": 1}},
        ]}}
        assert normalize_property(prop) == ["Post A", 3]

    def test_nested_lists_are_flattened(self):
        prop = {"type": "rollup", "rollup": {"type": "array", "array": [
            {"type": "multi_select", "multi_select": [{"name": "x"}, {"name": "y"}]},
            {"type": "relation", "relation": [{"id": "p9"}]},
        ]}}
        assert normalize_property(prop) == ["x", "y", "p9"]

    def test_rollup_of_rollups_recurses(self):
        inner = {"type": "rollup", "rollup": {"type": "array", "array": [
            {"type": "rollup", "rollup": {"type": "number", "number": 1}},
            {"type": "rollup", "rollup": {"type": "array", "array": [rich_text_prop("deep")]}},
        ]}}
        outer = {"type": "rollup", "rollup": {"type": "array", "array": [inner]}}
        assert normalize_property(outer) == [1, "deep"]

    def test_unsupported_rollup_is_none(self):
        assert normalize_property({"type": "rollup", "rollup": {"type": "incomplete"}}) is None


class TestNormalizationIsTotal:
    """Malformed or unknown input never raises."""

    @pytest.mark.parametrize("prop", [
        None,
        "title",
        {},
        {"type": "button", "button": {}},
        {"type": "select", "select": "not-a-dict"},
        {"type": "multi_select", "multi_select": [None]},
        {"type": "people", "people": "nobody"},
        {"type": "formula", "formula": None},
        {"type": "rollup", "rollup": {"type": "array", "array": None}},
    ])
    def test_returns_without_raising(self, prop):
        result = normalize_property(prop)
        assert result is None or result == [] or isinstance(result, (str, int, float, bool, list))

    def test_unknown_variant_is_none(self):
        assert normalize_property({"type": "verification", "verification": {}}) is None
