"""
Skill Scanner - runs one scan end to end.

The rule set is loaded once, then the extractor, match engine and aggregator
run in sequence and produce a ``ScanReport``. Nothing is kept between scans.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from ..config.scan_config import ScanConfig
from ..rules.rule_loader import load_rule_set
from ..rules.rule_set import RuleSet
from .aggregator import AggregateOptions, AllowlistEntry, aggregate
from .extractor import ContentExtractor
from .matcher import MatchEngine
from .report import ScanReport

logger = logging.getLogger(__name__)


def build_rule_set(config: ScanConfig) -> RuleSet:
    """Load the built-in and custom rule packs and apply rule overrides.

    Raises:
        InvalidRule: a rule file or rule entry is invalid.
    """
    custom_dirs = [Path(config.rules.custom_rules_dir)] if config.rules.custom_rules_dir else []
    rule_set = load_rule_set(custom_dirs)
    return rule_set.with_overrides(
        severity_overrides=config.rules.severity_overrides,
        disabled_rules=config.rules.disabled_rules,
        disabled_categories=config.rules.disabled_categories,
    )


class SkillScanner:
    """Main scanner class that orchestrates one scan."""

    def __init__(self, rule_set: Optional[RuleSet] = None, config: Optional[ScanConfig] = None):
        """Initialize the scanner.

        Args:
            rule_set: Rules to apply. Built from ``config`` if not provided.
            config: Optional ScanConfig; uses defaults if not provided.
        """
        self.config = config or ScanConfig()
        self.rule_set = rule_set if rule_set is not None else build_rule_set(self.config)
        logger.debug("Scanner ready with %d rule(s)", len(self.rule_set))

    def aggregate_options(self, extra_ignore: Iterable[str] = ()) -> AggregateOptions:
        rules = self.config.rules
        return AggregateOptions(
            min_severity=self.config.min_severity,
            ignore=frozenset(rules.ignore) | frozenset(extra_ignore),
            allowlist=tuple(
                AllowlistEntry(
                    rule=entry["rule"],
                    file=entry.get("file"),
                    reason=entry.get("reason", ""),
                )
                for entry in rules.allowlist
            ),
        )

    def scan(self, root: str, ignore: Iterable[str] = ()) -> ScanReport:
        """Scan the skill directory at *root*.

        Raises:
            TraversalError: *root* does not exist, is not a directory or
                cannot be listed.
        """
        extractor = ContentExtractor(
            root,
            max_file_size=self.config.max_file_size,
            oversize_policy=self.config.files.oversize_policy,
            skip_dirs=self.config.files.exclude_paths,
        )
        engine = MatchEngine(self.rule_set, workers=self.config.engine.workers)

        logger.info("Scanning %s with %d rule(s)", root, len(self.rule_set))
        raw_matches = engine.match(extractor)

        report = aggregate(
            raw_matches,
            self.rule_set,
            self.aggregate_options(ignore),
            diagnostics=list(extractor.diagnostics) + engine.diagnostics,
            files=extractor.stats,
            root=str(root),
        )
        logger.info(
            "Scanned %d of %d file(s): %d finding(s), %d diagnostic(s)",
            report.files.scanned, report.files.total, report.counts.total, len(report.diagnostics),
        )
        return report
