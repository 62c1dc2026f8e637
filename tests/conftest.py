"""Pytest configuration shared across test modules."""

import os

os.environ.setdefault("GOALS_LOG_LEVEL", "DEBUG")
os.environ.setdefault("GOALS_WORKERS", "2")
