"""Pattern-driven auto-linking of references such as ``#123``."""

from __future__ import annotations

from typing import List, Sequence

from .masking import Segment, split_protected
from .rules import LinkifierRule


def apply(text: str, rules: Sequence[LinkifierRule]) -> str:
    """Return ``text`` with every linkifier match turned into a markdown link.

    Rules run in declaration order. Within a rule matches are leftmost and
    non-overlapping; a span rewritten by one rule is protected from every
    later rule, while unrelated spans stay available to them. Code, existing
    links and URLs are never touched, which also makes the transform
    idempotent since its own output is a link.
    """

    if not rules:
        return text

    segments = split_protected(text)
    for rule in rules:
        segments = _apply_rule(segments, rule)
    return "".join(segment.text for segment in segments)


def _apply_rule(segments: Sequence[Segment], rule: LinkifierRule) -> List[Segment]:
    result: List[Segment] = []
    for segment in segments:
        if segment.protected:
            result.append(segment)
            continue

        cursor = 0
        for match in rule.pattern.finditer(segment.text):
            if match.end() == match.start():
                continue
            if match.start() > cursor:
                result.append(Segment(segment.text[cursor:match.start()], False))
            link = f"[{match.group(0)}]({rule.url_for(match)})"
            result.append(Segment(link, True))
            cursor = match.end()
        if cursor < len(segment.text):
            result.append(Segment(segment.text[cursor:], False))
    return result
