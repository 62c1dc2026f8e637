"""Coordinator for the page transformation pipeline."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Iterable, List

from . import badges as badges_module
from . import linkify as linkify_module
from . import links as links_module
from . import progress as progress_module
from . import users as users_module
from .rules import RuleSet
from .types import Page, PageResult, PageTransformWarning

logger = logging.getLogger(__name__)

TRACKED_KEY = "tracked"


def process_page(page: Page, rules: RuleSet) -> PageResult:
    """Transform a single page.

    Stages run in a fixed order: front matter, badges, linkifiers, user
    handles, then (for the markdown renderer) absolute links. Progress is
    computed from the page's tracked items when it declares any, and
    from its task list otherwise.
    """

    warnings: List[PageTransformWarning] = []
    metadata = dict(page.metadata) if isinstance(page.metadata, dict) else {}

    front_matter, content = progress_module.split_front_matter(page.content, warnings, page.path)
    metadata.update(front_matter)
    tasks = [] if TRACKED_KEY in metadata else progress_module.task_items(content)

    content = badges_module.render_badges(
        content,
        rules.badge_map,
        strict=rules.strict_badges,
        warnings=warnings,
        page=page.path,
    )
    content = linkify_module.apply(content, rules.linkifiers)
    content = users_module.resolve(
        content,
        rules.user_map,
        rules.ignore_users,
        warnings=warnings,
        page=page.path,
    )
    if rules.renderer == "markdown":
        content = links_module.absolutize_links(content, rules.site.site_url, page.path)

    goal_progress = None
    items = None
    if TRACKED_KEY in metadata:
        items = progress_module.tracked_items(metadata[TRACKED_KEY], warnings, page.path)
    elif tasks:
        items = tasks
    if items is not None:
        goal_progress = progress_module.aggregate(items)
        content = progress_module.attach(content, goal_progress)

    for warning in warnings:
        logger.log(warning.severity, "%s: %s", warning.page or "<draft>", warning.message)

    return PageResult(path=page.path, content=content, progress=goal_progress, warnings=warnings)


def process_book(pages: Iterable[Page], rules: RuleSet, workers: int = 1) -> List[PageResult]:
    """Transform every page, in parallel when ``workers`` is above one.

    Results come back in input order. ``rules`` is shared read-only by all
    workers.
    """

    pages = list(pages)
    transform = partial(process_page, rules=rules)
    if workers <= 1 or len(pages) <= 1:
        return [transform(page) for page in pages]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(transform, pages))

    logger.debug("processed %d page(s) with %d worker(s)", len(results), workers)
    return results
