"""Tests for rule-set shape detection and normalization."""

import random
import re

import pytest

from phishrules.errors import MalformedJsonError, UnrecognizedSchemaError
from phishrules.rules.models import CanonicalRuleSet, Indicator
from phishrules.rules.normalizer import (
    NormalizationDefaults,
    SequentialIdGenerator,
    TimestampIdGenerator,
    has_pattern,
    normalize_rule_set,
    parse_rules_json,
    to_base36,
)
from phishrules.rules.shapes import RuleSetShape, classify_rule_set


@pytest.fixture
def ids():
    return SequentialIdGenerator()


class TestClassifyRuleSet:
    """First matching shape wins."""

    def test_array(self):
        assert classify_rule_set([{"pattern": "x"}]).shape is RuleSetShape.ARRAY

    def test_indicators_wrapper_beats_rules(self):
        value = {"phishing_indicators": [], "rules": [{"id": "r1"}]}
        assert classify_rule_set(value).shape is RuleSetShape.INDICATORS_WRAPPER

    def test_legacy_wrapper(self):
        rule_input = classify_rule_set({"rules": [{"id": "r1", "type": "t"}]})
        assert rule_input.shape is RuleSetShape.LEGACY_WRAPPER
        assert rule_input.is_legacy
        assert rule_input.legacy_rules == ({"id": "r1", "type": "t"},)

    def test_single_rule_needs_id_and_type(self):
        assert classify_rule_set({"id": "a", "type": "b"}).shape is RuleSetShape.SINGLE_RULE
        assert classify_rule_set({"id": "a"}).shape is RuleSetShape.UNRECOGNIZED

    @pytest.mark.parametrize("value", [42, "rules", None, {"foo": 1}, {"rules": "nope"}])
    def test_unrecognized(self, value):
        assert classify_rule_set(value).shape is RuleSetShape.UNRECOGNIZED

    def test_blocking_rules_copied(self):
        value = {"phishing_indicators": [], "blocking_rules": [{"id": "b1"}]}
        rule_input = classify_rule_set(value)
        rule_input.blocking_rules[0]["id"] = "changed"
        assert value["blocking_rules"][0]["id"] == "b1"


class TestParseRulesJson:
    def test_empty_input(self):
        with pytest.raises(MalformedJsonError) as exc_info:
            parse_rules_json("   ")
        assert str(exc_info.value) == "Invalid JSON: No rules JSON provided"

    def test_syntax_error(self):
        with pytest.raises(MalformedJsonError) as exc_info:
            parse_rules_json("{not json")
        assert str(exc_info.value).startswith("Invalid JSON: ")

    def test_bytes_with_bom(self):
        assert parse_rules_json(b"\xef\xbb\xbf[1]") == [1]


class TestNormalizeRuleSet:
    """Raw rules are canonicalized with defaults filled in."""

    def test_defaults_filled(self, ids):
        rule_set = normalize_rule_set([{"pattern": "evil\\.com"}], id_generator=ids)
        assert rule_set.phishing_indicators == [
            Indicator(
                id="custom_seq_1",
                pattern="evil\\.com",
                flags="gi",
                severity="low",
                description="Custom rule",
                confidence=0.9,
                action="monitor",
                category="general",
            )
        ]
        assert rule_set.blocking_rules == {}

    def test_regex_used_when_pattern_blank(self, ids):
        rule_set = normalize_rule_set([{"id": "r", "pattern": "  ", "regex": "abc"}], id_generator=ids)
        assert rule_set.phishing_indicators[0].pattern == "abc"

    def test_category_falls_back_to_type(self, ids):
        rule_set = normalize_rule_set(
            [{"id": "r", "pattern": "x", "type": "brand"}, {"id": "s", "pattern": "y", "category": "cat", "type": "t"}],
            id_generator=ids,
        )
        assert [i.category for i in rule_set.phishing_indicators] == ["brand", "cat"]

    def test_falsy_values_replaced_by_defaults(self, ids):
        raw = {"id": "", "pattern": "x", "flags": "", "severity": None, "description": "", "action": ""}
        indicator = normalize_rule_set([raw], id_generator=ids).phishing_indicators[0]
        assert indicator.id == "custom_seq_1"
        assert indicator.flags == "gi"
        assert indicator.severity == "low"
        assert indicator.description == "Custom rule"
        assert indicator.action == "monitor"

    def test_zero_confidence_kept(self, ids):
        rule_set = normalize_rule_set([{"id": "r", "pattern": "x", "confidence": 0}], id_generator=ids)
        assert rule_set.phishing_indicators[0].confidence == 0

    def test_non_numeric_confidence_defaulted(self, ids):
        rule_set = normalize_rule_set([{"id": "r", "pattern": "x", "confidence": "high"}], id_generator=ids)
        assert rule_set.phishing_indicators[0].confidence == 0.9

    def test_rules_without_pattern_dropped(self, ids):
        rule_set = normalize_rule_set(
            [{"id": "a", "pattern": "x"}, {"id": "b"}, "junk", {"id": "c", "regex": ""}],
            id_generator=ids,
        )
        assert [i.id for i in rule_set.phishing_indicators] == ["a"]

    def test_duplicate_ids_kept(self, ids):
        rule_set = normalize_rule_set(
            [{"id": "dup", "pattern": "a"}, {"id": "dup", "pattern": "b"}], id_generator=ids
        )
        assert len(rule_set) == 2

    def test_indicators_wrapper_keeps_blocking_rules(self, ids):
        value = {
            "phishing_indicators": [{"id": "a", "pattern": "x", "severity": "high"}],
            "blocking_rules": [{"id": "b1", "type": "form_action_validation"}],
        }
        rule_set = normalize_rule_set(value, id_generator=ids)
        assert rule_set.blocking_rules == [{"id": "b1", "type": "form_action_validation"}]
        assert rule_set.phishing_indicators[0].severity == "high"

    def test_legacy_rules_without_patterns_yield_empty_set(self, ids):
        rule_set = normalize_rule_set({"rules": [{"id": "r1", "type": "t", "weight": 20}]}, id_generator=ids)
        assert len(rule_set) == 0

    def test_single_rule(self, ids):
        rule_set = normalize_rule_set({"id": "one", "type": "brand", "pattern": "x"}, id_generator=ids)
        assert rule_set.phishing_indicators[0].category == "brand"

    def test_unrecognized_raises(self, ids):
        with pytest.raises(UnrecognizedSchemaError) as exc_info:
            normalize_rule_set({"foo": 1}, id_generator=ids)
        assert str(exc_info.value) == "No usable rules found in input"

    def test_custom_defaults(self, ids):
        defaults = NormalizationDefaults(confidence=0.5)
        rule_set = normalize_rule_set([{"pattern": "x"}], id_generator=ids, defaults=defaults)
        assert rule_set.phishing_indicators[0].confidence == 0.5

    def test_input_not_mutated(self, ids):
        raw = [{"pattern": "x"}]
        normalize_rule_set(raw, id_generator=ids)
        assert raw == [{"pattern": "x"}]

    def test_idempotent_on_canonical_output(self, ids):
        first = normalize_rule_set([{"pattern": "x", "severity": "high"}], id_generator=ids)
        second = normalize_rule_set(first.to_dict(), id_generator=ids)
        assert second.to_dict() == first.to_dict()


class TestIdGenerators:
    def test_timestamp_id_format(self):
        generator = TimestampIdGenerator()
        rule_set = normalize_rule_set([{"pattern": "evil\\.com"}], id_generator=generator)
        assert re.fullmatch(r"custom_[0-9a-z]+_[0-9a-z]+", rule_set.phishing_indicators[0].id)

    def test_timestamp_id_is_deterministic_with_injected_sources(self):
        generator = TimestampIdGenerator(clock=lambda: 1.0, rng=random.Random(7))
        expected_suffix = to_base36(random.Random(7).randint(0, 9999))
        assert generator.next_id() == f"custom_rs_{expected_suffix}"

    def test_sequential_ids(self):
        generator = SequentialIdGenerator(start=35)
        assert [generator.next_id() for _ in range(2)] == ["custom_seq_z", "custom_seq_10"]

    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"


def test_has_pattern():
    assert has_pattern({"pattern": "x"})
    assert has_pattern({"regex": "x"})
    assert not has_pattern({"pattern": "   "})
    assert not has_pattern({"pattern": 5})
    assert not has_pattern(["pattern"])


def test_canonical_stats():
    rule_set = CanonicalRuleSet(
        phishing_indicators=[
            Indicator(id="a", pattern="x", severity="critical", category="brand"),
            Indicator(id="b", pattern="y", severity="low", category="brand"),
            Indicator(id="c", pattern="z", severity="high", category="access"),
        ],
        blocking_rules=[{"id": "b1"}],
    )
    stats = rule_set.stats()
    assert stats["total"] == 3
    assert stats["critical"] == 1
    assert stats["high"] == 1
    assert stats["medium"] == 0
    assert stats["categories"] == {"access": 1, "brand": 2}
    assert stats["blocking_rules"] == 1
