"""Detection of markdown regions that must never be rewritten.

Every text transform in the pipeline runs on the *unprotected* parts of a page
only. Protected regions are emitted byte for byte at their original position,
so a transform can never corrupt a code sample or the target of an existing
link.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Tuple

Span = Tuple[int, int]

_FENCE_RE = re.compile(r"(`{3,}|~{3,})(.*)")

_INLINE_CODE_RE = re.compile(r"(?<!`)(`+)(?!`)(?:(?!\n[ \t]*\n).)+?(?<!`)\1(?!`)", re.S)
_HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.S)
_HTML_ELEMENT_RE = re.compile(r"<(a|code|pre)\b[^>]*>.*?</\1\s*>", re.S | re.I)
_AUTOLINK_RE = re.compile(r"<(?:(?:https?|ftp|mailto):[^>\s]*|[^@\s<>]+@[^@\s<>]+)>")
_BARE_URL_RE = re.compile(r"(?:https?|ftp)://[^\s<>()\[\]]+")
_LINK_DEFINITION_RE = re.compile(r"^ {0,3}\[(?P<label>[^\]\n]+)\]:[^\n]*$", re.M)
_LIST_ITEM_RE = re.compile(r" {0,3}(?:[-*+]|\d{1,9}[.)])(?:[ \t]|$)")

# Link text allows one level of nested brackets so that image-in-link
# constructs such as badges are recognised as a single link.
_LINK_TEXT = r"!?\[(?:[^\[\]\n]|\[[^\[\]\n]*\])*\]"
_INLINE_LINK_RE = re.compile(_LINK_TEXT + r"\([^()\n]*(?:\([^()\n]*\)[^()\n]*)*\)")
_REFERENCE_LINK_RE = re.compile(_LINK_TEXT + r"\[[^\[\]\n]*\]")
_SHORTCUT_LINK_RE = re.compile(r"!?\[(?P<label>[^\[\]\n]+)\](?![(\[:])")

_ALWAYS = (
    _INLINE_CODE_RE,
    _HTML_COMMENT_RE,
    _AUTOLINK_RE,
    _BARE_URL_RE,
    _LINK_DEFINITION_RE,
)
_LINKS = (
    _HTML_ELEMENT_RE,
    _INLINE_LINK_RE,
    _REFERENCE_LINK_RE,
)


@dataclass(frozen=True)
class Segment:
    """A contiguous run of page text and whether it may be rewritten."""

    text: str
    protected: bool


def fenced_blocks(text: str) -> List[Span]:
    """Return spans of fenced code blocks, fences included.

    A block closes on a fence of the same character that is at least as long
    as the opening one. An unterminated block runs to the end of the text.
    """

    spans: List[Span] = []
    offset = 0
    opening: str | None = None
    start = 0
    for line in text.splitlines(keepends=True):
        stripped = line.lstrip(" ")
        match = None
        if len(line) - len(stripped) <= 3:
            match = _FENCE_RE.fullmatch(stripped.rstrip("\r\n"))
        if opening is None:
            if match and not (match.group(1)[0] == "`" and "`" in match.group(2)):
                opening = match.group(1)
                start = offset
        elif (
            match
            and match.group(1)[0] == opening[0]
            and len(match.group(1)) >= len(opening)
            and not match.group(2).strip()
        ):
            spans.append((start, offset + len(line)))
            opening = None
        offset += len(line)
    if opening is not None:
        spans.append((start, len(text)))
    return spans


def indented_blocks(text: str) -> List[Span]:
    """Return spans of indented code blocks.

    A block starts with a line indented by four spaces (or a tab) that follows
    a blank line, outside of a list, and runs over the indented lines after
    it. Blank lines between them belong to the block, trailing ones do not.
    """

    spans: List[Span] = []
    offset = 0
    start: int | None = None
    end = 0
    previous_blank = True
    in_list = False
    for line in text.splitlines(keepends=True):
        body = line.rstrip("\r\n")
        blank = not body.strip()
        indented = body.startswith(("    ", "\t"))
        if start is not None and not blank:
            if indented:
                end = offset + len(line)
            else:
                spans.append((start, end))
                start = None
        if start is None and not blank:
            if indented and previous_blank and not in_list:
                start = offset
                end = offset + len(line)
            elif not indented:
                in_list = bool(_LIST_ITEM_RE.match(body)) or (in_list and body[:1] in " \t")
        previous_blank = blank
        offset += len(line)
    if start is not None:
        spans.append((start, end))
    return spans


def code_blocks(text: str) -> List[Span]:
    """Return merged spans of fenced and indented code blocks."""

    fences = fenced_blocks(text)
    indented = [
        (start, end)
        for start, end in indented_blocks(text)
        if not any(fence_start <= start < fence_end for fence_start, fence_end in fences)
    ]
    return _merge(fences + indented)


def protected_spans(text: str, *, links: bool = True) -> List[Span]:
    """Return sorted, merged spans of ``text`` that transforms must skip.

    Code (fenced, indented and inline), HTML comments, autolinks, bare URLs
    and link reference definitions are always protected. Inline, reference
    and shortcut links, plus inline ``<a>``, ``<code>`` and ``<pre>``
    elements, are protected when ``links`` is true. A shortcut link is
    ``[label]`` with a matching definition on the same page.
    """

    blocks = code_blocks(text)
    patterns = _ALWAYS + _LINKS if links else _ALWAYS

    chunks: List[Tuple[int, str]] = []
    cursor = 0
    for block_start, block_end in blocks + [(len(text), len(text))]:
        chunks.append((cursor, text[cursor:block_start]))
        cursor = block_end

    labels = set()
    if links:
        for _, chunk in chunks:
            for match in _LINK_DEFINITION_RE.finditer(chunk):
                labels.add(_normalize_label(match.group("label")))

    spans: List[Span] = list(blocks)
    for chunk_start, chunk in chunks:
        for pattern in patterns:
            for match in pattern.finditer(chunk):
                if match.end() > match.start():
                    spans.append((chunk_start + match.start(), chunk_start + match.end()))
        if labels:
            for match in _SHORTCUT_LINK_RE.finditer(chunk):
                if _normalize_label(match.group("label")) in labels:
                    spans.append((chunk_start + match.start(), chunk_start + match.end()))
    return _merge(spans)


def split_protected(text: str, *, links: bool = True) -> List[Segment]:
    """Split ``text`` into alternating unprotected and protected segments."""

    segments: List[Segment] = []
    cursor = 0
    for start, end in protected_spans(text, links=links):
        if start > cursor:
            segments.append(Segment(text[cursor:start], False))
        segments.append(Segment(text[start:end], True))
        cursor = end
    if cursor < len(text):
        segments.append(Segment(text[cursor:], False))
    return segments


def map_unprotected(text: str, func: Callable[[str], str], *, links: bool = True) -> str:
    """Apply ``func`` to every unprotected segment and reassemble the text."""

    return "".join(
        segment.text if segment.protected else func(segment.text)
        for segment in split_protected(text, links=links)
    )


def _normalize_label(label: str) -> str:
    return " ".join(label.split()).casefold()


def _merge(spans: List[Span]) -> List[Span]:
    merged: List[Span] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
            continue
        merged.append((start, end))
    return merged
