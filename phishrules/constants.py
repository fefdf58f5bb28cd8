"""Centralized constants for phishrules.

This module contains enums and constants shared by the rule pipeline,
the report renderer and the event classifier so the taxonomy stays
consistent across them.
"""

from enum import IntEnum


class Severity(IntEnum):
    """Indicator severity levels with ranking for comparison."""

    UNRANKED = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @classmethod
    def from_string(cls, value: str | None) -> "Severity":
        """Convert a severity string to enum, defaulting to UNRANKED."""
        if not value or not isinstance(value, str):
            return cls.UNRANKED
        mapping = {
            "low": cls.LOW,
            "medium": cls.MEDIUM,
            "high": cls.HIGH,
            "critical": cls.CRITICAL,
        }
        return mapping.get(value, cls.UNRANKED)

    def __str__(self) -> str:
        return self.name.lower()


SEVERITIES = ("low", "medium", "high", "critical")
DECISIONS = ("block", "warn", "pass")

# Logical log channels in the persistent event store
SECURITY_EVENTS = "securityEvents"
ACCESS_LOGS = "accessLogs"
DEBUG_LOGS = "debugLogs"
LOG_CHANNELS = (SECURITY_EVENTS, ACCESS_LOGS, DEBUG_LOGS)


def severity_rank(value: str | None) -> int:
    """Return the sort rank of a severity string (unknown severities rank 0)."""
    return int(Severity.from_string(value))
