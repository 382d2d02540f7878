"""
skill-issue - Main CLI Entry Point

Usage:
    skill-issue [path] [options]
    python -m skill_issue [path] [options]
    skill-issue rules [--list|--stats|--category <name>|--export <file>]
"""

import argparse
import json
import logging
import os
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from skill_issue import __version__
from skill_issue.config import ScanConfig, list_modes, load_config
from skill_issue.core.report import ScanReport
from skill_issue.core.scanner import SkillScanner
from skill_issue.errors import SkillIssueError
from skill_issue.reporters import JSONReporter, SARIFReporter, TextReporter
from skill_issue.reporters.json_reporter import write_output
from skill_issue.rules import Severity, load_rule_set
from skill_issue.utils.redaction import redact_secrets

logger = logging.getLogger("skill_issue")

EXIT_OK = 0
EXIT_WARNINGS = 1
EXIT_ERRORS = 2

SEVERITY_CHOICES = [s.value for s in Severity]

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _sanitize_traceback(tb_str: str) -> str:
    """Redact sensitive information from traceback strings before printing."""
    home = os.path.expanduser("~")
    return redact_secrets(tb_str.replace(home, "~"))


def configure_logging(level: str, log_file: Optional[str] = None) -> None:
    """Send the package's log records to stderr (and optionally a file).

    Safe to call more than once; handlers from a previous call are replaced.
    """
    for handler in list(logger.handlers):
        if getattr(handler, "skill_issue_handler", False):
            logger.removeHandler(handler)
            handler.close()

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler.skill_issue_handler = True
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False


def exit_code_for(report: ScanReport, error_on: Severity = Severity.ERROR) -> int:
    """Map a report to the process exit code.

    No displayed findings -> 0; highest severity at or above *error_on* -> 2;
    otherwise a warning -> 1 and info only -> 0.
    """
    highest = report.highest_severity
    if highest is None:
        return EXIT_OK
    if highest >= error_on:
        return EXIT_ERRORS
    if highest >= Severity.WARNING:
        return EXIT_WARNINGS
    return EXIT_OK


def _use_color(config: ScanConfig) -> bool:
    if not config.output.color or os.environ.get("NO_COLOR"):
        return False
    if config.output.output_file:
        return False
    return sys.stdout.isatty()


def render_report(report: ScanReport, config: ScanConfig, scanner: SkillScanner) -> str:
    """Render *report* in the configured output format."""
    redact = config.logging.redact_secrets
    fmt = config.output.format
    if fmt == "json":
        reporter = JSONReporter(redact=redact)
        return reporter.render(reporter.generate(report))
    if fmt == "sarif":
        reporter = SARIFReporter(rule_set=scanner.rule_set, redact=redact)
        return reporter.render(reporter.generate(report))
    if fmt == "text":
        return TextReporter(
            color=_use_color(config),
            show_snippets=config.output.show_snippets,
            max_findings=config.output.max_findings_display,
            redact=redact,
        ).render(report)
    raise ValueError(f"Unknown output format: {fmt}")


def build_parser() -> argparse.ArgumentParser:
    modes_help = "; ".join(f"{m['name']}: {m['description']}" for m in list_modes())
    parser = argparse.ArgumentParser(
        prog="skill-issue",
        description="Static security analyzer for AI agent skill directories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan the current directory
  skill-issue

  # Scan a skill and show only warnings and errors
  skill-issue ./my-skill --severity warning

  # Ignore two rules
  skill-issue ./my-skill --ignore SL-NET-001 SL-EXEC-002

  # Output as SARIF for CI/CD
  skill-issue ./my-skill --format sarif --output-file results.sarif

  # List all rules
  skill-issue rules --list

  # Show rules by category
  skill-issue rules --category prompt-injection

Exit codes:
  0  no findings at or above the display threshold, or info only
  1  highest finding is a warning
  2  highest finding reaches --error-on, or a fatal error occurred
        """,
    )

    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Skill directory to scan (default: current directory)",
    )
    parser.add_argument(
        "--format", "-f",
        choices=["text", "json", "sarif"],
        default=None,
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--output-file", "-o",
        help="Write the report to this file instead of stdout",
    )
    parser.add_argument(
        "--config", "-c",
        help=(
            "Path to a YAML config file (default: .skill-issue.yaml in the scanned "
            "directory, rule filters only, or in the CWD)"
        ),
    )
    parser.add_argument(
        "--severity", "-s",
        type=str.lower,
        choices=SEVERITY_CHOICES,
        default=None,
        help="Minimum severity to display (default: info)",
    )
    parser.add_argument(
        "--ignore",
        nargs="+",
        action="extend",
        default=[],
        metavar="RULE_ID",
        help="Rule id(s) to drop from the results; repeatable",
    )
    parser.add_argument(
        "--error-on",
        type=str.lower,
        choices=SEVERITY_CHOICES,
        default=None,
        help="Exit with code 2 when a displayed finding reaches this severity (default: error)",
    )
    parser.add_argument(
        "--mode",
        choices=["strict", "balanced", "permissive"],
        default=None,
        help=f"Scan mode. {modes_help}",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Matching threads; 1 matches sequentially (default: 4)",
    )
    parser.add_argument(
        "--max-file-size-kb",
        type=int,
        default=None,
        help="Size ceiling per file in KiB (default: 500)",
    )
    parser.add_argument(
        "--oversize-policy",
        choices=["truncate", "skip"],
        default=None,
        help="What to do with files over the ceiling (default: truncate)",
    )
    parser.add_argument(
        "--rules-dir",
        help="Directory of additional YAML rule files",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress the text report; only the exit code is reported",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors in text output",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _cli_overrides(args: argparse.Namespace) -> dict:
    """Translate explicitly given CLI flags into a config overlay."""
    overrides: dict = {}
    if args.mode:
        overrides["scan_mode"] = args.mode
    if args.severity:
        overrides.setdefault("thresholds", {})["min_severity"] = args.severity
    if args.error_on:
        overrides.setdefault("thresholds", {})["error_on"] = args.error_on
    if args.rules_dir:
        overrides.setdefault("rules", {})["custom_rules_dir"] = args.rules_dir
    if args.max_file_size_kb is not None:
        overrides.setdefault("files", {})["max_file_size_kb"] = args.max_file_size_kb
    if args.oversize_policy:
        overrides.setdefault("files", {})["oversize_policy"] = args.oversize_policy
    if args.workers is not None:
        overrides.setdefault("engine", {})["workers"] = args.workers
    if args.format:
        overrides.setdefault("output", {})["format"] = args.format
    if args.output_file:
        overrides.setdefault("output", {})["output_file"] = args.output_file
    if args.quiet:
        overrides.setdefault("output", {})["quiet"] = True
    if args.verbose:
        overrides.setdefault("output", {})["verbose"] = True
    if args.no_color:
        overrides.setdefault("output", {})["color"] = False
    return overrides


def run_scan(args: argparse.Namespace) -> int:
    """Load config, scan, render and return the exit code."""
    config = load_config(
        config_path=args.config,
        cli_overrides=_cli_overrides(args) or None,
        scan_root=args.path,
    )
    level = "DEBUG" if config.output.verbose else config.logging.level
    configure_logging(level, config.logging.file)
    logger.debug("Scan mode: %s", config.scan_mode)

    scanner = SkillScanner(config=config)
    report = scanner.scan(args.path, ignore=args.ignore)

    quiet_text = config.output.quiet and config.output.format == "text"
    if config.output.output_file:
        written = write_output(render_report(report, config, scanner), config.output.output_file)
        if not config.output.quiet:
            print(f"Report written to: {written}", file=sys.stderr)
    elif not quiet_text:
        sys.stdout.write(render_report(report, config, scanner))

    return exit_code_for(report, config.error_on)


def handle_rules_cli(argv: List[str]) -> int:
    """Handle the 'rules' CLI subcommand."""
    parser = argparse.ArgumentParser(
        prog="skill-issue rules",
        description="Inspect the loaded security rules",
    )
    parser.add_argument(
        "--list", "-l",
        action="store_true",
        dest="list_rules",
        help="List all loaded rules (default)",
    )
    parser.add_argument(
        "--stats", "-s",
        action="store_true",
        help="Show rule statistics",
    )
    parser.add_argument(
        "--category", "-c",
        help="List rules in a specific category",
    )
    parser.add_argument(
        "--list-categories",
        action="store_true",
        help="List all available categories",
    )
    parser.add_argument(
        "--export", "-e",
        metavar="FILE",
        help="Export all rules to JSON file (use '-' for stdout)",
    )
    parser.add_argument(
        "--rules-dir",
        help="Directory of additional YAML rule files",
    )
    args = parser.parse_args(argv)
    return handle_rules_command(args)


def handle_rules_command(args: argparse.Namespace) -> int:
    """Handle the 'rules' subcommand."""
    rule_set = load_rule_set([Path(args.rules_dir)] if args.rules_dir else None)

    if args.stats:
        stats = rule_set.stats()
        print("=" * 60)
        print("RULE STATISTICS")
        print("=" * 60)
        print(f"Total rules: {stats['total_rules']}")
        print(f"Categories: {stats['categories']}")

        print("\nBy Severity:")
        for severity in SEVERITY_CHOICES:
            print(f"  {severity}: {stats['rules_by_severity'][severity]}")

        print("\nBy Category:")
        for category, count in stats["rules_by_category"].items():
            print(f"  {category}: {count}")
        return EXIT_OK

    if args.category:
        rules = rule_set.by_category(args.category)
        if not rules:
            print(f"No rules found in category: {args.category}")
            return EXIT_OK

        print(f"Rules in category '{args.category}':")
        print("-" * 60)
        for rule in rules:
            print(f"  {rule.id} ({rule.severity.value})")
            print(f"      Name: {rule.name}")
            print(f"      Description: {rule.description}")
            print()
        return EXIT_OK

    if args.list_categories:
        print("Available categories:")
        for category in rule_set.categories():
            print(f"  {category} ({len(rule_set.by_category(category))} rules)")
        return EXIT_OK

    if args.export:
        output = json.dumps(rule_set.to_dict(), indent=2) + "\n"
        if args.export == "-":
            sys.stdout.write(output)
        else:
            written = write_output(output, args.export)
            print(f"Rules exported to: {written}")
        return EXIT_OK

    print(f"Loaded {len(rule_set)} rules\n")
    for rule in rule_set:
        print(f"  {rule.id:<14} {rule.severity.value:<8} {rule.category:<20} {rule.name}")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    if argv is None:
        argv = sys.argv[1:]

    verbose = "-v" in argv or "--verbose" in argv
    try:
        if argv and argv[0] == "rules":
            return handle_rules_cli(argv[1:])
        args = build_parser().parse_args(argv)
        return run_scan(args)
    except (SkillIssueError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERRORS
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERRORS
    except Exception as e:
        if verbose:
            print(_sanitize_traceback(traceback.format_exc()), file=sys.stderr)
        print(f"error: unexpected failure during scan: {e}", file=sys.stderr)
        return EXIT_ERRORS


if __name__ == "__main__":
    sys.exit(main())
