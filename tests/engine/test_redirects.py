"""Redirect table tests."""

from __future__ import annotations

import pytest

from goals_preprocessor.engine.config import load_config
from goals_preprocessor.engine.redirects import RedirectTable, build_redirects
from goals_preprocessor.errors import ConfigurationError


def test_lookup_is_exact(rule_set):
    table = rule_set.redirects
    assert table.lookup("/2024h2/slate.html") == "index.html"
    assert table.lookup("/2024h2/slate") is None
    assert table.lookup("/2024h2/SLATE.html") is None
    assert table.lookup("/missing.html") is None
    assert "/introduction.html" in table
    assert len(table) == 7


def test_resolve_returns_absolute_targets(rule_set):
    table = rule_set.redirects
    assert table.resolve("/2024h2/slate.html") == "/2024h2/index.html"
    assert table.resolve("/introduction.html") == "/index.html"
    assert table.resolve("/missing.html") is None


def test_chains_are_reported_not_followed(rule_set):
    table = rule_set.redirects
    assert table.resolve("/2024h2/proposed.html") == "/2024h2/accepted.html"
    assert table.chains() == [
        ("/2024h2/orphaned.html", "/2024h2/accepted.html", "/2024h2/goals.html"),
        ("/2024h2/proposed.html", "/2024h2/accepted.html", "/2024h2/goals.html"),
    ]


def test_external_and_absolute_targets():
    table = build_redirects({"/a.html": "https://example.com/a", "/b/c.html": "/d.html"})
    assert table.resolve("/a.html") == "https://example.com/a"
    assert table.resolve("/b/c.html") == "/d.html"
    assert table.chains() == []


def test_duplicate_sources_are_rejected():
    with pytest.raises(ConfigurationError, match="duplicate redirect source '/a.html'"):
        build_redirects([["/a.html", "b.html"], ["/a.html", "c.html"]])


def test_duplicate_keys_in_yaml_are_rejected(tmp_path):
    path = tmp_path / "goals.yaml"
    path.write_text('redirects:\n  "/a.html": b.html\n  "/a.html": c.html\n', encoding="utf-8")
    with pytest.raises(ConfigurationError, match="duplicate key '/a.html'"):
        load_config(path)


@pytest.mark.parametrize(
    "raw",
    [
        {"relative.html": "x.html"},
        {"/a.html": ""},
        [["/a.html"]],
        "not a table",
    ],
)
def test_invalid_tables(raw):
    with pytest.raises(ConfigurationError):
        build_redirects(raw)


def test_table_is_read_only():
    table = RedirectTable({"/a.html": "b.html"})
    with pytest.raises(TypeError):
        table.entries["/c.html"] = "d.html"  # type: ignore[index]
