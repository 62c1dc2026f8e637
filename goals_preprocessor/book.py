"""Glue between the mdbook JSON protocol and the page pipeline."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List

from .engine.index import process_book
from .engine.rules import RuleSet
from .engine.types import Page


def iter_chapters(items: List[Dict[str, Any]]) -> Iterator[Dict[str, Any]]:
    """Yield every chapter dict in book order, sub-chapters included.

    Separators and part titles carry no content and are skipped.
    """

    for item in items:
        if not isinstance(item, dict) or "Chapter" not in item:
            continue
        chapter = item["Chapter"]
        yield chapter
        yield from iter_chapters(chapter.get("sub_items") or [])


def book_items(book: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Return the top-level item list (``sections`` or, in newer mdbook, ``items``)."""

    if "sections" in book:
        return book["sections"]
    return book.get("items") or []


def transform_book(book: Dict[str, Any], rules: RuleSet, workers: int = 1) -> Dict[str, Any]:
    """Transform the content of every chapter of ``book`` in place and return it."""

    chapters = list(iter_chapters(book_items(book)))
    pages = [
        Page(path=chapter.get("path") or "", content=chapter.get("content") or "")
        for chapter in chapters
    ]
    for chapter, result in zip(chapters, process_book(pages, rules, workers=workers)):
        chapter["content"] = result.content
    return book
