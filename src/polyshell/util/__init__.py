"""Utility helpers package."""

from polyshell.util.logging import configure_logging, get_logger
from polyshell.util.observability import EventLogger, MetricsCollector

__all__ = [
    "EventLogger",
    "MetricsCollector",
    "configure_logging",
    "get_logger",
]
