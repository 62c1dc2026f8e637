"""Exceptions that abort a preprocessing run."""

from __future__ import annotations


class PreprocessorError(Exception):
    """Base class for errors that stop the whole build."""


class ConfigurationError(PreprocessorError):
    """Raised when the configuration cannot be compiled into a rule set."""


class UnknownBadgeError(PreprocessorError):
    """Raised in strict mode when a page uses a badge label with no URL."""

    def __init__(self, label: str, page: str = "") -> None:
        self.label = label
        self.page = page
        location = f" in {page}" if page else ""
        super().__init__(f"unknown badge label {label!r}{location}")
