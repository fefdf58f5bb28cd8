"""Rule-set modules for phishrules."""

from .loader import RuleSetLoader
from .models import CanonicalRuleSet, Indicator, LegacyRule
from .normalizer import (
    NormalizationDefaults,
    SequentialIdGenerator,
    TimestampIdGenerator,
    normalize_rule_set,
    parse_rules_json,
)
from .patterns import UrlAllowlist, url_pattern_to_regex, validate_url_pattern
from .shapes import RuleSetShape, classify_rule_set
from .synthesizer import SynthesisPolicy, synthesize_indicators
from .validation import ValidationReport, validate_rule_set

__all__ = [
    "CanonicalRuleSet",
    "Indicator",
    "LegacyRule",
    "NormalizationDefaults",
    "RuleSetLoader",
    "RuleSetShape",
    "SequentialIdGenerator",
    "SynthesisPolicy",
    "TimestampIdGenerator",
    "UrlAllowlist",
    "ValidationReport",
    "classify_rule_set",
    "normalize_rule_set",
    "parse_rules_json",
    "synthesize_indicators",
    "url_pattern_to_regex",
    "validate_rule_set",
    "validate_url_pattern",
]
