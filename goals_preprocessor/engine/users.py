"""Rewriting and suppression of ``@handle`` mentions."""

from __future__ import annotations

import logging
import re
from typing import AbstractSet, List, Mapping, Optional

from .masking import map_unprotected, split_protected
from .types import PageTransformWarning

# GitHub style handle, optionally a team (``@org/team``). The sigil must not be
# glued to a word, so e-mail addresses and URL paths are left alone.
HANDLE_RE = re.compile(
    r"(?<![\w.@/])@[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?(?:/[A-Za-z0-9][A-Za-z0-9_-]*)?(?![\w-])"
)

_JOINER = r"(?:,[ \t]*(?:and|or)\b|,|;|&|/|\band\b|\bor\b)"
_JOINER_BEFORE_RE = re.compile(r"[ \t]*" + _JOINER + r"[ \t]*(?P<newline>\r?\n[ \t]*)?\Z")
_JOINER_AFTER_RE = re.compile(r"[ \t]*" + _JOINER + r"[ \t]*")
_LIST_MARKER_RE = re.compile(r"[ \t]*(?:[-*+]|\d{1,9}[.)])[ \t]*")
_LINE_END_RE = re.compile(r"[ \t]*(?:\r?\n|\Z)")

# A link whose whole label is one handle, such as ``[@bot](https://github.com/bot)``.
_HANDLE_LINK_RE = re.compile(
    r"!?\[(?P<handle>" + HANDLE_RE.pattern + r")\](?:\([^\n]*\)|\[[^\[\]\n]*\])?"
)


def is_handle(value: str) -> bool:
    """Return True when ``value`` is exactly one handle token."""

    return HANDLE_RE.fullmatch(value) is not None


def resolve(
    text: str,
    user_map: Mapping[str, str],
    ignore_users: AbstractSet[str],
    *,
    warnings: Optional[List[PageTransformWarning]] = None,
    page: str = "",
) -> str:
    """Canonicalize mapped handles and drop ignored ones from ``text``.

    Matching is exact. Dropping a handle also drops one joining separator
    next to it (the preceding one when present, otherwise the following one),
    so lists such as ``@a, @bot and @b`` stay well formed. A link labelled
    with an ignored handle goes with it, and so does a list item that held
    nothing else.
    """

    if not user_map and not ignore_users and warnings is None:
        return text
    if ignore_users:
        text = _drop_handle_links(text, ignore_users)

    def rewrite(chunk: str) -> str:
        return _rewrite_chunk(chunk, user_map, ignore_users, warnings, page)

    return map_unprotected(text, rewrite, links=False)


def _rewrite_chunk(
    chunk: str,
    user_map: Mapping[str, str],
    ignore_users: AbstractSet[str],
    warnings: Optional[List[PageTransformWarning]],
    page: str,
) -> str:
    out = ""
    pos = 0
    while True:
        match = HANDLE_RE.search(chunk, pos)
        if match is None:
            break
        out += chunk[pos:match.start()]
        handle = match.group(0)
        pos = match.end()

        if handle in ignore_users:
            out, pos = _drop(out, chunk, pos)
        elif handle in user_map:
            out += user_map[handle]
        else:
            out += handle
            if warnings is not None:
                warnings.append(
                    PageTransformWarning(
                        page=page,
                        kind="unresolved-user",
                        message=f"user {handle} has no canonical form",
                        severity=logging.DEBUG,
                    )
                )
    return out + chunk[pos:]


def _drop_handle_links(text: str, ignore_users: AbstractSet[str]) -> str:
    segments = split_protected(text)
    out = ""
    skip = 0
    for index, segment in enumerate(segments):
        piece = segment.text[skip:]
        skip = 0
        match = _HANDLE_LINK_RE.fullmatch(piece) if segment.protected else None
        if match and match.group("handle") in ignore_users:
            following = ""
            if index + 1 < len(segments) and not segments[index + 1].protected:
                following = segments[index + 1].text
            out, skip = _drop(out, following, 0)
            continue
        out += piece
    return out


def _drop(out: str, chunk: str, pos: int) -> tuple[str, int]:
    """Remove a handle and its joining separator, returning the new state."""

    line_start = out.rfind("\n") + 1
    rest = _LINE_END_RE.match(chunk, pos)
    if rest and _LIST_MARKER_RE.fullmatch(out, line_start):
        kept = out[:line_start]
        if not rest.group(0).endswith("\n"):
            kept = kept.rstrip("\r\n")
        return kept, rest.end()

    before = _JOINER_BEFORE_RE.search(out)
    if before and out[:before.start()].strip():
        if before.group("newline"):
            return out[:before.start()] + before.group("newline"), _skip_blanks(chunk, pos)
        return out[:before.start()], pos

    after = _JOINER_AFTER_RE.match(chunk, pos)
    if after:
        return out, after.end()

    if out.endswith((" ", "\t")):
        stripped = out.rstrip(" \t")
        if stripped and not stripped.endswith("\n"):
            return stripped, pos

    # At the start of a line keep the indentation and drop the gap after the handle.
    return out, _skip_blanks(chunk, pos)


def _skip_blanks(chunk: str, pos: int) -> int:
    while pos < len(chunk) and chunk[pos] in " \t":
        pos += 1
    return pos
