"""Configuration management for phishrules."""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .rules.loader import is_remote
from .rules.normalizer import NormalizationDefaults
from .rules.patterns import validate_allowlist
from .rules.synthesizer import SynthesisPolicy

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # Rule source: local path or http(s) URL
    rules_source: str = "./config/detection-rules.json"
    fetch_timeout: float = 5.0

    # Event store (JSON document or SQLite key/value database)
    event_store_path: Path = Path("./data/events.json")
    debug_logging: bool = False

    config_dir: Path = Path("./config")

    # Scoring overrides from config/scoring.yaml
    synthesis: SynthesisPolicy = field(default_factory=SynthesisPolicy)
    normalization: NormalizationDefaults = field(default_factory=NormalizationDefaults)

    # URL patterns that are never treated as phishing (wildcards or regex)
    url_allowlist: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.event_store_path = Path(self.event_store_path)
        self.config_dir = Path(self.config_dir)


def _load_list_file(path: Path) -> list[str]:
    """Load a list file, ignoring comments and empty lines."""
    items: list[str] = []
    with open(path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                items.append(line)
    return items


def _coerce_number(raw, default: float, name: str) -> float:
    if raw is None:
        return default
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        logger.warning("Ignoring non-numeric %s in scoring.yaml: %r", name, raw)
        return default
    return raw


def _load_scoring(config_dir: Path) -> tuple[SynthesisPolicy, NormalizationDefaults]:
    """Load scoring overrides from config/scoring.yaml (optional)."""
    policy = SynthesisPolicy()
    defaults = NormalizationDefaults()
    path = Path(config_dir or ".") / "scoring.yaml"
    if not path.exists():
        return policy, defaults

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse scoring.yaml: %s", exc)
        return policy, defaults
    if not isinstance(data, dict):
        logger.warning("Ignoring scoring.yaml: expected a mapping")
        return policy, defaults

    synthesis = data.get("synthesis") or {}
    if isinstance(synthesis, dict):
        thresholds = synthesis.get("thresholds") or {}
        if not isinstance(thresholds, dict):
            thresholds = {}
        policy = replace(
            policy,
            critical_threshold=_coerce_number(
                thresholds.get("critical"), policy.critical_threshold, "synthesis.thresholds.critical"
            ),
            high_threshold=_coerce_number(
                thresholds.get("high"), policy.high_threshold, "synthesis.thresholds.high"
            ),
            medium_threshold=_coerce_number(
                thresholds.get("medium"), policy.medium_threshold, "synthesis.thresholds.medium"
            ),
            confidence=_coerce_number(
                synthesis.get("confidence"), policy.confidence, "synthesis.confidence"
            ),
        )

    normalization = data.get("normalization") or {}
    if isinstance(normalization, dict):
        defaults = replace(
            defaults,
            confidence=_coerce_number(
                normalization.get("confidence"), defaults.confidence, "normalization.confidence"
            ),
        )

    return policy, defaults


def load_config() -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    policy, defaults = _load_scoring(config_dir)

    allowlist_str = os.getenv("URL_ALLOWLIST", "")
    url_allowlist = [p.strip() for p in allowlist_str.split(",") if p.strip()]
    allowlist_path = config_dir / "url_allowlist.txt"
    if allowlist_path.exists():
        url_allowlist.extend(_load_list_file(allowlist_path))

    return Config(
        rules_source=os.getenv("RULES_SOURCE", "./config/detection-rules.json"),
        fetch_timeout=float(os.getenv("RULES_FETCH_TIMEOUT", "5")),
        event_store_path=Path(os.getenv("EVENT_STORE_PATH", "./data/events.json")),
        debug_logging=os.getenv("DEBUG_LOGGING", "false").lower() == "true",
        config_dir=config_dir,
        synthesis=policy,
        normalization=defaults,
        url_allowlist=url_allowlist,
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []
    if not (config.rules_source or "").strip():
        errors.append("RULES_SOURCE is required")
    elif not is_remote(config.rules_source) and not Path(config.rules_source).exists():
        logger.info("Rules source %s does not exist yet", config.rules_source)

    if config.fetch_timeout <= 0:
        errors.append("RULES_FETCH_TIMEOUT must be positive")

    errors.extend(validate_allowlist(config.url_allowlist))
    errors.extend(config.synthesis.threshold_errors())
    if not 0 <= config.normalization.confidence <= 1:
        errors.append(
            f"Normalization confidence must be within [0, 1] (got {config.normalization.confidence})"
        )
    return errors
