"""Command-line entry point for phishrules."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import Config, load_config, validate_config
from .errors import PhishRulesError
from .evaluation.engine import RegexEvaluationEngine
from .evaluation.orchestrator import EvaluationOrchestrator, PreparedRuleSet
from .evaluation.models import EvaluationOutcome
from .events.classifier import classify_event
from .events.store import (
    SqliteEventStore,
    export_logs,
    filter_logs_for_display,
    load_logs,
    open_event_store,
)
from .report.ranking import clean_description, rank_threats
from .report.renderer import export_report, render_report, render_validation
from .rules.loader import RuleSetLoader
from .rules.normalizer import parse_rules_json
from .rules.patterns import UrlAllowlist, validate_url_pattern
from .rules.validation import validate_rule_set

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _write(text: str, output: Optional[Path]) -> None:
    if output:
        output.write_text(text, encoding="utf-8")
        logger.info("Wrote %s", output)
    else:
        print(text)


def _read_page(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8", errors="replace")


def _format_text(prepared: PreparedRuleSet, outcome: EvaluationOutcome) -> str:
    result = outcome.result
    summary = result.summary
    lines = [
        f"Decision: {(result.final_decision or '').upper()}  score={result.score}  ({outcome.elapsed_ms}ms)",
        f"Rules: {len(prepared.rule_set)} indicators ({prepared.synthesized_count} synthesized)",
        f"Threats: {summary.total_threats} (critical {summary.critical}, high {summary.high}, "
        f"medium {summary.medium}, low {summary.low})",
    ]
    if result.blocking.should_block:
        lines.append(f"Blocking reason: {result.blocking.reason}")
    for threat in rank_threats(result.threats):
        desc = clean_description(threat.description)
        lines.append(f"  [{(threat.severity or '').upper()}] {threat.id} ({threat.action}) {desc}")
    for feature in result.unsupported:
        lines.append(f"  n/a: {feature}")
    return "\n".join(lines)


async def _cmd_evaluate(args: argparse.Namespace, config: Config) -> int:
    allowlist = UrlAllowlist(config.url_allowlist)
    matched = allowlist.matches(args.url)
    if matched and not args.force:
        print(f"URL matches allowlist pattern {matched!r}; not evaluated (use --force)")
        return 0

    loader = RuleSetLoader(config.fetch_timeout)
    rules_text = await loader.load_text(args.rules or config.rules_source)
    orchestrator = EvaluationOrchestrator(RegexEvaluationEngine())
    prepared, outcome = await orchestrator.run_playground(
        rules_text,
        _read_page(args.html),
        args.url,
        defaults=config.normalization,
        policy=config.synthesis,
    )

    if args.format == "json":
        _write(export_report(outcome), args.output)
    elif args.format == "html":
        _write(render_report(outcome), args.output)
    else:
        _write(_format_text(prepared, outcome), args.output)
    return 0


async def _cmd_validate(args: argparse.Namespace, config: Config) -> int:
    loader = RuleSetLoader(config.fetch_timeout)
    rules_text = await loader.load_text(args.rules or config.rules_source)
    report = validate_rule_set(parse_rules_json(rules_text))

    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2))
    elif args.format == "html":
        print(render_validation(report))
    else:
        print(f"Checked {report.rules_checked} rule(s) ({report.shape.value})")
        for issue in report.issues:
            print(f"  issue: {issue.message}")
        for suggestion in report.suggestions:
            print(f"  suggestion: {suggestion.message}")
        if report.ok:
            print("No blocking validation issues found.")
    return 0 if report.ok else 1


def _cmd_check_pattern(args: argparse.Namespace, config: Config) -> int:
    validation = validate_url_pattern(args.pattern)
    if not validation.valid:
        print(f"Invalid pattern: {validation.error}")
        return 1
    print(f"Regex: {validation.regex}")
    if args.url:
        hit = UrlAllowlist([args.pattern]).matches(args.url)
        print(f"{args.url}: {'match' if hit else 'no match'}")
    return 0


async def _cmd_logs(args: argparse.Namespace, config: Config) -> int:
    store = open_event_store(args.store or config.event_store_path)
    try:
        if isinstance(store, SqliteEventStore):
            await store.connect()
        if args.export:
            print(json.dumps(await export_logs(store, __version__), indent=2, ensure_ascii=False))
            return 0
        logs = await load_logs(store)
    finally:
        if isinstance(store, SqliteEventStore):
            await store.close()

    visible = filter_logs_for_display(logs, args.debug or config.debug_logging)
    events = [classify_event(log) for log in visible[: args.limit]]
    if args.json:
        print(json.dumps([e.to_dict() for e in events], indent=2, ensure_ascii=False))
        return 0
    if not events:
        print("No events.")
    for event in events:
        print(
            f"{event.timestamp}  {event.event_type:<28} {event.url:<32} "
            f"{event.threat_level:<8} {event.action:<10} {event.message}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="phishrules",
        description="Evaluate, validate and report on phishing-detection rule sets.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    evaluate = sub.add_parser("evaluate", help="Run a rule set against a page")
    evaluate.add_argument("--rules", help="Rule-set path or URL (default: RULES_SOURCE)")
    evaluate.add_argument("--html", required=True, help="Page HTML file, or - for stdin")
    evaluate.add_argument("--url", required=True, help="URL the page was served from")
    evaluate.add_argument("--format", choices=("text", "html", "json"), default="text")
    evaluate.add_argument("--output", "-o", type=Path)
    evaluate.add_argument("--force", action="store_true", help="Evaluate even allowlisted URLs")

    validate = sub.add_parser("validate", help="Check a rule set for authoring mistakes")
    validate.add_argument("--rules", help="Rule-set path or URL (default: RULES_SOURCE)")
    validate.add_argument("--format", choices=("text", "html", "json"), default="text")

    check = sub.add_parser("check-pattern", help="Validate a URL allowlist pattern")
    check.add_argument("pattern")
    check.add_argument("--url", help="Also test the pattern against this URL")

    logs = sub.add_parser("logs", help="Show stored security events")
    logs.add_argument("--store", type=Path, help="Event store path (default: EVENT_STORE_PATH)")
    logs.add_argument("--debug", action="store_true", help="Include debug-level entries")
    logs.add_argument("--limit", type=int, default=100)
    logs.add_argument("--json", action="store_true")
    logs.add_argument("--export", action="store_true", help="Print the raw export document")

    return parser


def run(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    config = load_config()
    for error in validate_config(config):
        logger.warning("Config: %s", error)

    try:
        if args.command == "evaluate":
            return asyncio.run(_cmd_evaluate(args, config))
        if args.command == "validate":
            return asyncio.run(_cmd_validate(args, config))
        if args.command == "check-pattern":
            return _cmd_check_pattern(args, config)
        return asyncio.run(_cmd_logs(args, config))
    except (PhishRulesError, ValueError, OSError) as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except Exception as exc:
        logger.error("Unexpected failure: %s", exc, exc_info=True)
        return 1


def main():
    """Entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
