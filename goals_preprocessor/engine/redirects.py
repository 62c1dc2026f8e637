"""Static old-path to new-path redirect table for moved pages."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedirectTable:
    """Single-hop redirect lookup.

    Targets may be absolute site paths, relative paths (resolved against the
    directory of the old path, as the hosting layer does) or external URLs.
    Chains such as ``a -> b -> c`` are never followed; whoever maintains the
    table has to flatten them. :meth:`chains` lists the entries that need it.
    """

    entries: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, old_path: object) -> bool:
        return old_path in self.entries

    def lookup(self, old_path: str) -> Optional[str]:
        """Return the configured target for ``old_path`` or ``None``."""

        return self.entries.get(old_path)

    def resolve(self, old_path: str) -> Optional[str]:
        """Return the absolute target for ``old_path`` or ``None``."""

        target = self.lookup(old_path)
        if target is None:
            return None
        return _absolute_target(old_path, target)

    def chains(self) -> List[Tuple[str, str, str]]:
        """Return ``(old, middle, final)`` for every entry that points at another entry."""

        found = []
        for old_path in sorted(self.entries):
            middle = self.resolve(old_path)
            if middle is not None and middle in self.entries:
                found.append((old_path, middle, self.resolve(middle) or ""))
        return found


def build_redirects(raw: Any) -> RedirectTable:
    """Validate raw redirect configuration and build the table.

    ``raw`` is either a mapping or a sequence of ``[old, new]`` pairs. Keys
    must be absolute site paths and must be unique.
    """

    if raw is None:
        return RedirectTable()
    if isinstance(raw, Mapping):
        pairs: Iterable[Any] = list(raw.items())
    elif isinstance(raw, (list, tuple)):
        pairs = raw
    else:
        raise ConfigurationError("redirects must be a mapping or a list of [old, new] pairs")

    entries: dict[str, str] = {}
    for index, pair in enumerate(pairs):
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise ConfigurationError(f"redirect entry {index + 1} must be an [old, new] pair")
        old_path, new_path = pair
        if not isinstance(old_path, str) or not old_path.startswith("/"):
            raise ConfigurationError(f"redirect source {old_path!r} must be an absolute site path")
        if not isinstance(new_path, str) or not new_path.strip():
            raise ConfigurationError(f"redirect target for {old_path!r} must be a non-empty string")
        if old_path in entries:
            raise ConfigurationError(f"duplicate redirect source {old_path!r}")
        entries[old_path] = new_path

    table = RedirectTable(entries)
    for old_path, middle, final in table.chains():
        logger.warning(
            "redirect %s points at %s which redirects again to %s; flatten it to a single hop",
            old_path,
            middle,
            final,
        )
    return table


def _absolute_target(old_path: str, target: str) -> str:
    if "://" in target or target.startswith("/"):
        return target
    base = posixpath.dirname(old_path)
    return posixpath.normpath(posixpath.join(base, target))
