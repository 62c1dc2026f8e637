"""Rendering of status labels as linked badge images."""

from __future__ import annotations

import re
from typing import List, Mapping, Optional

from ..errors import UnknownBadgeError
from .masking import map_unprotected
from .types import PageTransformWarning

# Authors mark a status with an empty reference-style image: ``![Complete][]``.
BADGE_RE = re.compile(r"!\[(?P<label>[^\[\]\n]+)\]\[\]")


def render(token: str, badge_map: Mapping[str, str]) -> str:
    """Return badge markup for ``token`` or the token unchanged.

    ``token`` is a full badge construct such as ``![Help wanted][]``. Labels
    are compared case-sensitively.
    """

    match = BADGE_RE.fullmatch(token)
    if match is None:
        return token
    label = match.group("label")
    url = badge_map.get(label)
    if url is None:
        return token
    return f"[![{label}]({url})]({url})"


def render_badges(
    text: str,
    badge_map: Mapping[str, str],
    *,
    strict: bool = False,
    warnings: Optional[List[PageTransformWarning]] = None,
    page: str = "",
) -> str:
    """Render every badge construct in ``text`` outside of code regions.

    Unknown labels are left as written and recorded in ``warnings``; with
    ``strict`` they raise :class:`UnknownBadgeError` instead.
    """

    def replace(match: re.Match[str]) -> str:
        label = match.group("label")
        if label in badge_map:
            return render(match.group(0), badge_map)
        if strict:
            raise UnknownBadgeError(label, page)
        if warnings is not None:
            warnings.append(
                PageTransformWarning(
                    page=page,
                    kind="unknown-badge",
                    message=f"no badge configured for label {label!r}",
                )
            )
        return match.group(0)

    return map_unprotected(text, lambda chunk: BADGE_RE.sub(replace, chunk), links=False)
