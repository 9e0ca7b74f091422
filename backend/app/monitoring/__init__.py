"""Metric registry and live session metric definitions."""

from . import metrics, registry

__all__ = ["metrics", "registry"]
