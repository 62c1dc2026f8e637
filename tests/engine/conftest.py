"""Shared fixtures for engine tests."""

from __future__ import annotations

import copy
from typing import Any, Dict

import pytest

from goals_preprocessor.engine.config import load_config, merge_into
from goals_preprocessor.engine.rules import build_rule_set
from goals_preprocessor.engine.types import Page

BOOK_CONFIG: Dict[str, Any] = {
    "links": {
        "Help wanted": "https://img.shields.io/badge/Help%20wanted-yellow",
        "Complete": "https://img.shields.io/badge/Complete-green",
        "TBD": "https://img.shields.io/badge/TBD-red",
        "Team": "https://img.shields.io/badge/Team%20ask-red",
        "Not funded": "https://img.shields.io/badge/Not%20yet%20funded-red",
    },
    "linkifiers": {
        "RFC #([0-9]+)": "https://github.com/rust-lang/rfcs/pull/$1",
        "([a-zA-Z0-9-]+)/([a-zA-Z0-9-]+)#([0-9]+)": "https://github.com/$1/$2/issues/$3",
        "#([0-9]+)": "https://github.com/rust-lang/rust/issues/$1",
    },
    "users": {"@old": "@New"},
    "ignore_users": ["@bot", "@triagebot"],
    "redirects": {
        "/2024h2/async_fn_everywhere.html": "async.html",
        "/2024h2/slate.html": "index.html",
        "/2024h2/orphaned.html": "accepted.html",
        "/2024h2/proposed.html": "accepted.html",
        "/2024h2/accepted.html": "goals.html",
        "/2024h2/flagship.html": "goals.html",
        "/introduction.html": "index.html",
    },
    "site_url": "https://rust-lang.github.io/rust-project-goals/",
}


@pytest.fixture()
def engine_config():
    """Provide a mutable configuration shaped like the project's book.toml."""

    config = load_config(None)
    merge_into(config.raw, copy.deepcopy(BOOK_CONFIG))
    return config


@pytest.fixture()
def rule_set(engine_config):
    return build_rule_set(engine_config)


def make_page(content: str, *, path: str = "2024h2/goal.md", metadata: Dict[str, Any] | None = None) -> Page:
    return Page(path=path, content=content, metadata=metadata or {})
