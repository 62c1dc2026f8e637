"""Goal progress: tracked-item parsing, aggregation and the client hand-off.

A goal page declares the work it tracks in a YAML front-matter block::

    ---
    tracked:
      - title: Stabilize the feature
        status: complete
      - title: Write the docs
        status: in progress
    ---

Pages without a ``tracked`` key fall back to their task list, where
``- [x]`` marks a complete item and ``- [ ]`` an open one.

The counts are recomputed on every build and handed to the browser script
through the data attributes of a ``<div class="goal-progress">`` element.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml
from bs4 import BeautifulSoup

from .masking import code_blocks, map_unprotected
from .types import GoalProgress, ItemStatus, PageTransformWarning, TrackedItem

logger = logging.getLogger(__name__)

PLACEHOLDER_CLASS = "goal-progress"

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(?P<body>.*?)^---[ \t]*(?:\r?\n|\Z)", re.S | re.M)
_PLACEHOLDER_RE = re.compile(
    r"<div\b[^>]*\bclass\s*=\s*([\"'])(?:[^\"']*\s)?"
    + PLACEHOLDER_CLASS
    + r"(?:\s[^\"']*)?\1[^>]*>\s*</div>",
    re.I,
)
_TASK_ITEM_RE = re.compile(r"^[ \t]*[-*+][ \t]+\[(?P<mark>[ xX])\][ \t]+(?P<title>\S[^\n]*)$", re.M)

_STATUS_ALIASES = {
    ItemStatus.COMPLETE: {"complete", "completed", "done", "finished"},
    ItemStatus.IN_PROGRESS: {"in progress", "started", "wip", "active", "ongoing"},
    ItemStatus.NOT_STARTED: {"not started", "todo", "planned", "pending", "blocked"},
}
_STATUS_LOOKUP = {alias: status for status, aliases in _STATUS_ALIASES.items() for alias in aliases}


def split_front_matter(
    text: str,
    warnings: Optional[List[PageTransformWarning]] = None,
    page: str = "",
) -> Tuple[Dict[str, Any], str]:
    """Return ``(metadata, body)`` for a page with optional YAML front matter.

    Pages without front matter yield ``({}, text)``. Front matter that is not
    a YAML mapping is reported and the text is returned untouched.
    """

    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text

    try:
        data = yaml.safe_load(match.group("body"))
    except yaml.YAMLError as exc:
        _warn(warnings, page, "malformed-front-matter", f"front matter is not valid YAML: {exc}")
        return {}, text
    if data is None:
        data = {}
    if not isinstance(data, dict):
        _warn(warnings, page, "malformed-front-matter", "front matter must be a mapping")
        return {}, text
    return data, text[match.end():]


def parse_status(value: Any) -> Optional[ItemStatus]:
    """Map a loosely written status onto :class:`ItemStatus`."""

    if isinstance(value, ItemStatus):
        return value
    if not isinstance(value, str):
        return None
    key = re.sub(r"[\s_-]+", " ", value.strip().lower())
    return _STATUS_LOOKUP.get(key)


def tracked_items(
    raw: Any,
    warnings: Optional[List[PageTransformWarning]] = None,
    page: str = "",
) -> List[TrackedItem]:
    """Build tracked items from page metadata.

    An item whose status is missing or unreadable still counts towards the
    total, as NOT_STARTED, and a ``malformed-status`` warning is recorded.
    """

    if raw is None:
        return []
    if not isinstance(raw, list):
        _warn(warnings, page, "malformed-status", "tracked items must be a list")
        return []

    items: List[TrackedItem] = []
    for index, entry in enumerate(raw, start=1):
        if isinstance(entry, dict):
            title = str(entry.get("title") or f"item {index}")
            status = parse_status(entry.get("status"))
        else:
            title = str(entry) if entry is not None else f"item {index}"
            status = None
        if status is None:
            shown = entry.get("status") if isinstance(entry, dict) else None
            _warn(
                warnings,
                page,
                "malformed-status",
                f"tracked item {title!r} has unreadable status {shown!r}; counted as not started",
            )
            status = ItemStatus.NOT_STARTED
        items.append(TrackedItem(title=title, status=status))
    return items


def task_items(text: str) -> List[TrackedItem]:
    """Build tracked items from the markdown task list of a page.

    ``- [x]`` items are complete and ``- [ ]`` items not started. Task lists
    inside code blocks are ignored.
    """

    blocks = code_blocks(text)
    items: List[TrackedItem] = []
    for match in _TASK_ITEM_RE.finditer(text):
        if any(start <= match.start() < end for start, end in blocks):
            continue
        status = ItemStatus.NOT_STARTED if match.group("mark") == " " else ItemStatus.COMPLETE
        items.append(TrackedItem(title=match.group("title").strip(), status=status))
    return items


def aggregate(items: Iterable[Any]) -> GoalProgress:
    """Reduce tracked items (or bare statuses) to a :class:`GoalProgress`.

    The percentage is rounded half up. An empty set yields ``percent == 0``
    with ``total == 0``. Unreadable statuses count as NOT_STARTED.
    """

    counts: Counter[ItemStatus] = Counter()
    for item in items:
        if isinstance(item, Mapping):
            status = parse_status(item.get("status"))
        else:
            status = parse_status(getattr(item, "status", item))
        counts[status or ItemStatus.NOT_STARTED] += 1

    total = sum(counts.values())
    complete = counts[ItemStatus.COMPLETE]
    if total:
        percent = (200 * complete + total) // (2 * total)
    else:
        logger.debug("no tracked items, reporting 0%% progress")
        percent = 0
    return GoalProgress(
        total=total,
        complete=complete,
        in_progress=counts[ItemStatus.IN_PROGRESS],
        not_started=counts[ItemStatus.NOT_STARTED],
        percent=percent,
    )


def render_placeholder(progress: GoalProgress, existing: str | None = None) -> str:
    """Return the progress element, keeping attributes of ``existing`` if given."""

    soup = BeautifulSoup(existing or "", "html.parser")
    element = soup.find("div")
    if element is None:
        element = soup.new_tag("div")
        element["class"] = [PLACEHOLDER_CLASS]
    for key, value in progress.to_dict().items():
        element["data-" + key.replace("_", "-")] = str(value)
    return str(element)


def attach(text: str, progress: GoalProgress) -> str:
    """Fill every progress placeholder in ``text``, adding one if there is none."""

    filled = 0

    def fill(chunk: str) -> str:
        nonlocal filled

        def replace(match: re.Match[str]) -> str:
            nonlocal filled
            filled += 1
            return render_placeholder(progress, match.group(0))

        return _PLACEHOLDER_RE.sub(replace, chunk)

    text = map_unprotected(text, fill)
    if filled:
        return text
    return render_placeholder(progress) + "\n\n" + text


def _warn(
    warnings: Optional[List[PageTransformWarning]],
    page: str,
    kind: str,
    message: str,
) -> None:
    if warnings is not None:
        warnings.append(PageTransformWarning(page=page, kind=kind, message=message))
