"""Error taxonomy for the rule pipeline."""

from __future__ import annotations


class PhishRulesError(Exception):
    """Base exception for rule pipeline errors."""

    pass


class MalformedJsonError(PhishRulesError):
    """Rule input is empty or not valid JSON."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Invalid JSON: {message}")


class UnrecognizedSchemaError(PhishRulesError):
    """JSON is valid but matches none of the supported rule-set shapes."""

    def __init__(self, message: str = "No usable rules found in input"):
        self.message = message
        super().__init__(message)


class NoUsableIndicatorsError(PhishRulesError):
    """Normalization and synthesis both produced zero indicators."""

    def __init__(
        self,
        message: str = (
            "No phishing_indicators found. Ensure JSON has phishing_indicators "
            "array with objects containing a pattern field."
        ),
    ):
        self.message = message
        super().__init__(message)


class PatternError(PhishRulesError):
    """A pattern does not compile as a regular expression."""

    def __init__(self, pattern: str, message: str):
        self.pattern = pattern
        self.message = message
        super().__init__(f"Invalid pattern {pattern!r}: {message}")


class EvaluationExecutionError(PhishRulesError):
    """The evaluation engine call failed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Evaluation error: {message}")


class RuleSetLoadError(PhishRulesError):
    """A rule-set document could not be read or fetched."""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"Failed to load rules from {source}: {message}")
