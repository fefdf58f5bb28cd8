"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from phishrules import config as config_module
from phishrules.config import Config, _load_scoring, load_config, validate_config
from phishrules.rules.synthesizer import SynthesisPolicy

_ENV_VARS = (
    "RULES_SOURCE",
    "RULES_FETCH_TIMEOUT",
    "EVENT_STORE_PATH",
    "DEBUG_LOGGING",
    "CONFIG_DIR",
    "URL_ALLOWLIST",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "load_dotenv", lambda *args, **kwargs: False)
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    return tmp_path


def test_load_config_defaults(clean_env):
    config = load_config()
    assert config.rules_source == "./config/detection-rules.json"
    assert config.fetch_timeout == 5.0
    assert config.event_store_path == Path("./data/events.json")
    assert config.debug_logging is False
    assert config.synthesis == SynthesisPolicy()
    assert config.normalization.confidence == 0.9
    assert config.url_allowlist == []


def test_load_config_from_env(clean_env, monkeypatch):
    monkeypatch.setenv("RULES_SOURCE", "https://rules.example.com/r.json")
    monkeypatch.setenv("RULES_FETCH_TIMEOUT", "2.5")
    monkeypatch.setenv("DEBUG_LOGGING", "TRUE")
    monkeypatch.setenv("URL_ALLOWLIST", "https://a.com/*, ,https://b.com/")
    (clean_env / "url_allowlist.txt").write_text("# comment\n\nhttps://c.com/*\n")

    config = load_config()
    assert config.rules_source == "https://rules.example.com/r.json"
    assert config.fetch_timeout == 2.5
    assert config.debug_logging is True
    assert config.url_allowlist == ["https://a.com/*", "https://b.com/", "https://c.com/*"]


class TestScoringOverrides:
    """config/scoring.yaml overrides thresholds and confidences."""

    def test_overrides_applied(self, tmp_path):
        (tmp_path / "scoring.yaml").write_text(
            "synthesis:\n"
            "  thresholds:\n"
            "    critical: 40\n"
            "    high: 30\n"
            "  confidence: 0.6\n"
            "normalization:\n"
            "  confidence: 0.8\n"
        )
        policy, defaults = _load_scoring(tmp_path)
        assert policy.critical_threshold == 40
        assert policy.high_threshold == 30
        assert policy.medium_threshold == 15
        assert policy.confidence == 0.6
        assert defaults.confidence == 0.8

    def test_missing_file(self, tmp_path):
        policy, defaults = _load_scoring(tmp_path)
        assert policy == SynthesisPolicy()
        assert defaults.confidence == 0.9

    def test_malformed_yaml_ignored(self, tmp_path):
        (tmp_path / "scoring.yaml").write_text("synthesis: [unclosed\n")
        policy, _ = _load_scoring(tmp_path)
        assert policy == SynthesisPolicy()

    def test_non_numeric_values_ignored(self, tmp_path):
        (tmp_path / "scoring.yaml").write_text("synthesis:\n  thresholds:\n    critical: lots\n")
        policy, _ = _load_scoring(tmp_path)
        assert policy.critical_threshold == 30


class TestValidateConfig:
    def test_defaults_valid(self):
        assert validate_config(Config()) == []

    def test_invalid_allowlist_pattern(self):
        errors = validate_config(Config(url_allowlist=["https://(bad"]))
        assert len(errors) == 1
        assert errors[0].startswith('Invalid pattern in URL allowlist: "https://(bad"')

    def test_bad_thresholds_and_timeout(self):
        config = Config(
            fetch_timeout=0,
            synthesis=SynthesisPolicy(critical_threshold=10, high_threshold=20),
        )
        errors = validate_config(config)
        assert "RULES_FETCH_TIMEOUT must be positive" in errors
        assert any("critical >= high >= medium" in e for e in errors)

    def test_missing_rules_source(self):
        assert "RULES_SOURCE is required" in validate_config(Config(rules_source=" "))
