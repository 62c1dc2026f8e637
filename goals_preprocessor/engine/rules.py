"""Compilation of configuration into the immutable per-run rule set."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, FrozenSet, Iterable, List, Mapping, Tuple

from ..errors import ConfigurationError
from .config import EngineConfig
from .redirects import RedirectTable, build_redirects
from .users import is_handle

# ``$N`` refers to capture group N, ``$$`` is a literal dollar sign.
_PLACEHOLDER_RE = re.compile(r"\$(\$|\d+)")


@dataclass(frozen=True)
class LinkifierRule:
    """Compiled pattern plus the URL template its matches link to."""

    pattern: re.Pattern[str]
    template: str

    def url_for(self, match: re.Match[str]) -> str:
        """Expand the template with the capture groups of ``match``."""

        def replace(placeholder: re.Match[str]) -> str:
            ref = placeholder.group(1)
            if ref == "$":
                return "$"
            return match.group(int(ref)) or ""

        return _PLACEHOLDER_RE.sub(replace, self.template)


@dataclass(frozen=True)
class SiteInfo:
    """Site metadata used to build absolute links."""

    site_url: str = "/"


@dataclass(frozen=True)
class RuleSet:
    """Everything a page transform needs, shared read-only across a build."""

    linkifiers: Tuple[LinkifierRule, ...] = ()
    badge_map: Mapping[str, str] = field(default_factory=dict)
    user_map: Mapping[str, str] = field(default_factory=dict)
    ignore_users: FrozenSet[str] = frozenset()
    redirects: RedirectTable = field(default_factory=RedirectTable)
    site: SiteInfo = field(default_factory=SiteInfo)
    renderer: str = "html"
    strict_badges: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "linkifiers", tuple(self.linkifiers))
        object.__setattr__(self, "badge_map", MappingProxyType(dict(self.badge_map)))
        object.__setattr__(self, "user_map", MappingProxyType(dict(self.user_map)))
        object.__setattr__(self, "ignore_users", frozenset(self.ignore_users))


def compile_linkifier(pattern: str, template: str) -> LinkifierRule:
    """Compile one linkifier and check its template against the pattern."""

    if not isinstance(pattern, str) or not pattern:
        raise ConfigurationError(f"linkifier pattern {pattern!r} must be a non-empty string")
    if not isinstance(template, str) or not template:
        raise ConfigurationError(f"linkifier {pattern!r} needs a non-empty URL template")
    try:
        compiled = re.compile(pattern)
    except re.error as exc:
        raise ConfigurationError(f"linkifier {pattern!r} is not a valid regex: {exc}") from exc

    for placeholder in _PLACEHOLDER_RE.finditer(template):
        ref = placeholder.group(1)
        if ref != "$" and int(ref) > compiled.groups:
            raise ConfigurationError(
                f"linkifier {pattern!r} template {template!r} uses ${ref} "
                f"but the pattern has {compiled.groups} capture group(s)"
            )
    return LinkifierRule(pattern=compiled, template=template)


def build_rule_set(config: EngineConfig) -> RuleSet:
    """Validate ``config`` and compile it into a :class:`RuleSet`.

    Every problem is reported as a :class:`ConfigurationError` before any page
    is processed.
    """

    linkifiers = [
        compile_linkifier(pattern, template)
        for pattern, template in _pairs(config.section("linkifiers"), "linkifiers")
    ]

    badge_map = {}
    for label, url in _pairs(config.section("links"), "links"):
        if not isinstance(label, str) or not label.strip():
            raise ConfigurationError(f"badge label {label!r} must be a non-empty string")
        if not isinstance(url, str) or not url:
            raise ConfigurationError(f"badge {label!r} needs a URL")
        badge_map[label] = url

    user_map = {}
    for handle, canonical in _pairs(config.section("users"), "users"):
        _check_handle(handle, "users")
        if not isinstance(canonical, str) or not canonical:
            raise ConfigurationError(f"user {handle!r} needs a canonical form")
        user_map[handle] = canonical

    ignore_users = config.section("ignore_users")
    if isinstance(ignore_users, str) or not isinstance(ignore_users, Iterable):
        raise ConfigurationError("ignore_users must be a list of handles")
    for handle in ignore_users:
        _check_handle(handle, "ignore_users")

    renderer = config.get("renderer") or "html"
    return RuleSet(
        linkifiers=linkifiers,
        badge_map=badge_map,
        user_map=user_map,
        ignore_users=frozenset(ignore_users),
        redirects=build_redirects(config.get("redirects")),
        site=SiteInfo(site_url=config.get("site_url") or "/"),
        renderer=str(renderer),
        strict_badges=bool(config.get("strict_badges", False)),
    )


def _pairs(raw: Any, name: str) -> List[Tuple[Any, Any]]:
    """Return ordered ``(key, value)`` pairs from a mapping or list config."""

    if isinstance(raw, Mapping):
        return list(raw.items())
    if isinstance(raw, (list, tuple)):
        pairs = []
        for entry in raw:
            if isinstance(entry, Mapping) and len(entry) == 1:
                pairs.extend(entry.items())
            elif isinstance(entry, (list, tuple)) and len(entry) == 2:
                pairs.append((entry[0], entry[1]))
            else:
                raise ConfigurationError(f"{name} entry {entry!r} must be a [key, value] pair")
        return pairs
    raise ConfigurationError(f"{name} must be a mapping")


def _check_handle(handle: Any, name: str) -> None:
    if not isinstance(handle, str) or not is_handle(handle):
        raise ConfigurationError(f"{name} entry {handle!r} is not a valid @handle")
