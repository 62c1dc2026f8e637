"""Helpers that turn page-relative references into absolute site URLs."""

from __future__ import annotations

import posixpath
import re
from .masking import map_unprotected

# Inline link destinations pointing at a markdown source, with an optional fragment.
_MD_TARGET_RE = re.compile(r"\]\((?P<target>[^()\s#]+?)\.md(?P<fragment>#[^()\s]*)?\)")


def absolutize_links(text: str, site_url: str, page_path: str) -> str:
    """Rewrite relative ``*.md`` link targets into absolute ``*.html`` URLs.

    Targets resolve against the directory of ``page_path`` (a path relative to
    the book source root). ``README.md`` maps to ``index.html`` the way the
    site generator renders it. URLs with a scheme are left alone.
    """

    base = site_url.rstrip("/")
    page_dir = posixpath.dirname(page_path or "")

    def replace(match: re.Match[str]) -> str:
        target = match.group("target")
        if "://" in target or target.startswith("mailto:"):
            return match.group(0)
        if target.startswith("/"):
            resolved = target.lstrip("/")
        else:
            resolved = posixpath.normpath(posixpath.join(page_dir, target))
        if resolved.startswith(".."):
            return match.group(0)
        head, name = posixpath.split(resolved)
        if name == "README":
            resolved = posixpath.join(head, "index")
        fragment = match.group("fragment") or ""
        return f"]({base}/{resolved}.html{fragment})"

    return map_unprotected(text, lambda chunk: _MD_TARGET_RE.sub(replace, chunk), links=False)
