"""Typed data structures shared by the preprocessing pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ItemStatus(str, Enum):
    """Status of a single tracked item on a goal page."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class TrackedItem:
    """One unit of linked work tracked by a goal."""

    title: str
    status: ItemStatus


@dataclass(frozen=True)
class GoalProgress:
    """Aggregated completion state of a goal's tracked items."""

    total: int
    complete: int
    in_progress: int
    not_started: int
    percent: int

    def to_dict(self) -> Dict[str, int]:
        """Return the stable shape read by the client-side progress script."""

        return {
            "total": self.total,
            "complete": self.complete,
            "in_progress": self.in_progress,
            "not_started": self.not_started,
            "percent": self.percent,
        }


@dataclass(frozen=True)
class PageTransformWarning:
    """A recoverable condition found while transforming a page."""

    page: str
    kind: str
    message: str
    severity: int = logging.WARNING


@dataclass(frozen=True)
class Page:
    """Raw page handed to the pipeline."""

    path: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PageResult:
    """Transformed page plus any page-level data."""

    path: str
    content: str
    progress: Optional[GoalProgress] = None
    warnings: List[PageTransformWarning] = field(default_factory=list)
