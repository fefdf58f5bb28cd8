"""Tests for shared constants."""

from phishrules.constants import Severity, severity_rank


def test_severity_from_string():
    assert Severity.from_string("critical") is Severity.CRITICAL
    assert Severity.from_string("bogus") is Severity.UNRANKED
    assert Severity.from_string(None) is Severity.UNRANKED
    assert str(Severity.HIGH) == "high"


def test_severity_rank_order():
    ranks = [severity_rank(s) for s in ("critical", "high", "medium", "low", "unknown")]
    assert ranks == [4, 3, 2, 1, 0]
