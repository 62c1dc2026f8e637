"""Configuration helpers for the preprocessor."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from ..errors import ConfigurationError


@dataclass(frozen=True)
class EngineConfig:
    """Typed wrapper around the merged configuration dictionary."""

    raw: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    def section(self, key: str) -> Any:
        value = self.raw.get(key)
        return {} if value is None else value


DEFAULTS: Dict[str, Any] = {
    "renderer": "html",
    "strict_badges": False,
    "links": {},
    "linkifiers": {},
    "users": {},
    "ignore_users": [],
    "redirects": {},
    "site_url": "/",
}

# mdbook keys that feed the engine, keyed by the book.toml table they live in.
_PREPROCESSOR_KEYS = ("links", "linkifiers", "users", "ignore_users", "strict_badges")
_HTML_KEYS = {
    "site-url": "site_url",
    "redirect": "redirects",
}


class _UniqueKeyLoader(yaml.SafeLoader):
    """Safe loader that rejects duplicate mapping keys instead of keeping the last."""

    def construct_mapping(self, node, deep=False):  # type: ignore[override]
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise ConfigurationError(
                    f"duplicate key {key!r} at line {key_node.start_mark.line + 1}"
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load configuration from YAML, merging with defaults."""

    data = copy.deepcopy(DEFAULTS)

    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as stream:
            try:
                user = yaml.load(stream, Loader=_UniqueKeyLoader) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"cannot parse {path}: {exc}") from exc
        if not isinstance(user, dict):
            raise ConfigurationError(f"{path} must contain a mapping at the top level")
        merge_into(data, _normalize_keys(user))

    return EngineConfig(data)


def config_from_context(
    context: Mapping[str, Any],
    preprocessor: str = "goals",
    base: EngineConfig | None = None,
) -> EngineConfig:
    """Build configuration from the context object mdbook passes on stdin.

    Engine settings come from ``[preprocessor.<name>]`` and site metadata from
    ``[output.html]``. Values found there override ``base`` (or the defaults).
    """

    data = copy.deepcopy(base.raw) if base is not None else copy.deepcopy(DEFAULTS)
    book_config = context.get("config") or {}
    preprocessor_table = (book_config.get("preprocessor") or {}).get(preprocessor) or {}
    html_table = (book_config.get("output") or {}).get("html") or {}

    override: Dict[str, Any] = {}
    for key, value in _normalize_keys(preprocessor_table).items():
        if key in _PREPROCESSOR_KEYS:
            override[key] = value
    for key, target in _HTML_KEYS.items():
        if key in html_table:
            override[target] = html_table[key]
    if context.get("renderer"):
        override["renderer"] = context["renderer"]

    merge_into(data, override)
    return EngineConfig(data)


def merge_into(base: Dict[str, Any], override: Mapping[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value


def _normalize_keys(table: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(key).replace("-", "_"): value for key, value in table.items()}
