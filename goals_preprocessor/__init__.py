"""Markdown preprocessor for goal-tracking books."""

__version__ = "0.1.0"
