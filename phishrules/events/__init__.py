"""Security event log modules for phishrules."""

from .classifier import ClassifiedEvent, classify_event, format_log_message
from .store import JsonEventStore, SqliteEventStore, filter_logs_for_display, load_logs

__all__ = [
    "ClassifiedEvent",
    "JsonEventStore",
    "SqliteEventStore",
    "classify_event",
    "filter_logs_for_display",
    "format_log_message",
    "load_logs",
]
