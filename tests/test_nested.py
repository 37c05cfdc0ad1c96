"""Unit tests for nested value access.

Tests cover:
- Name splitting and joining in both notations
- Reads and existence checks on dicts and lists
- Auto-vivification on writes
- Leaf path enumeration
"""

from formstage.nested import (
    enumerate_paths,
    get_nested_value,
    join_nested_name,
    nested_key_exists,
    set_nested_value,
    split_nested_name,
)


class TestNames:
    """Test splitting and joining nested names."""

    def test_split_dotted(self):
        """Should split a dotted name on dots."""
        assert split_nested_name("address.city") == ["address", "city"]

    def test_split_subscript(self):
        """Should split a subscripted name on brackets."""
        assert split_nested_name("address[city]") == ["address", "city"]

    def test_split_mixed(self):
        """Should accept both notations in one name."""
        assert split_nested_name("rows[0].cells[2]") == ["rows", "0", "cells", "2"]

    def test_join_dotted(self):
        """Should join with dots by default."""
        assert join_nested_name(["a", "b", "0"]) == "a.b.0"

    def test_join_subscript(self):
        """Should join with brackets when asked."""
        assert join_nested_name(["a", "b", "0"], subscript=True) == "a[b][0]"

    def test_join_single_segment(self):
        """A single segment has no separators in either notation."""
        assert join_nested_name(["a"]) == "a"
        assert join_nested_name(["a"], subscript=True) == "a"


class TestGetAndExists:
    """Test reading values."""

    def test_get_nested_dict_value(self):
        """Should follow dict keys."""
        tree = {"address": {"city": "Leeds"}}
        assert get_nested_value(tree, "address.city") == "Leeds"
        assert get_nested_value(tree, "address[city]") == "Leeds"

    def test_get_list_element(self):
        """Should follow numeric segments into lists."""
        tree = {"tags": ["a", "b"]}
        assert get_nested_value(tree, "tags[1]") == "b"
        assert get_nested_value(tree, "tags.0") == "a"

    def test_get_missing_returns_default(self):
        """Absent paths return the default rather than raising."""
        tree = {"tags": ["a"]}
        assert get_nested_value(tree, "tags.5") is None
        assert get_nested_value(tree, "nope.deeper", default="x") == "x"

    def test_exists_for_none_value(self):
        """A key holding None still exists."""
        tree = {"a": None}
        assert nested_key_exists(tree, "a") is True
        assert get_nested_value(tree, "a", default="x") is None

    def test_exists_false_for_missing(self):
        """Missing keys and out-of-range indices do not exist."""
        tree = {"a": {"b": 1}, "c": [1]}
        assert nested_key_exists(tree, "a.x") is False
        assert nested_key_exists(tree, "c.3") is False
        assert nested_key_exists(tree, "") is False

    def test_scalar_has_no_children(self):
        """A path through a scalar does not exist."""
        assert nested_key_exists({"a": "text"}, "a.b") is False


class TestSet:
    """Test writing values."""

    def test_set_top_level(self):
        """Should set a plain key."""
        tree = {}
        set_nested_value(tree, "name", "bob")
        assert tree == {"name": "bob"}

    def test_set_creates_dicts(self):
        """Non-numeric segments create dicts."""
        tree = {}
        set_nested_value(tree, "a.b.c", 1)
        assert tree == {"a": {"b": {"c": 1}}}

    def test_set_creates_lists_for_numeric_segments(self):
        """Numeric segments create lists, padded with None."""
        tree = {}
        set_nested_value(tree, "rows[1].name", "x")
        assert tree == {"rows": [None, {"name": "x"}]}

    def test_set_overwrites_existing(self):
        """Should replace an existing value."""
        tree = {"a": {"b": 1}}
        set_nested_value(tree, "a.b", 2)
        assert tree == {"a": {"b": 2}}

    def test_set_replaces_scalar_with_container(self):
        """A scalar where a container is needed is replaced."""
        tree = {"a": "text"}
        set_nested_value(tree, "a.b", 1)
        assert tree == {"a": {"b": 1}}

    def test_set_keeps_siblings(self):
        """Writing one path leaves sibling keys alone."""
        tree = {"a": {"b": 1}}
        set_nested_value(tree, "a.c", 2)
        assert tree == {"a": {"b": 1, "c": 2}}


class TestEnumeratePaths:
    """Test leaf path enumeration."""

    def test_enumerate_dotted(self):
        """Should list every leaf in dotted notation."""
        tree = {"a": {"b": 1, "c": [1, 2]}, "d": "x"}
        assert sorted(enumerate_paths(tree)) == ["a.b", "a.c.0", "a.c.1", "d"]

    def test_enumerate_subscript(self):
        """Should list every leaf in subscript notation."""
        tree = {"a": {"b": 1}}
        assert enumerate_paths(tree, subscript=True) == ["a[b]"]

    def test_enumerate_scalar(self):
        """A scalar tree has no paths."""
        assert enumerate_paths("x") == []
