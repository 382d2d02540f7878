"""
Finding Aggregator - turn raw matches into the ordered finding set of a report.

Steps, in order:

1. drop matches of ignored rules;
2. drop matches covered by an allowlist entry (counted);
3. attach severity, category and guidance from the rule set;
4. deduplicate on (rule id, path, line, column), first occurrence wins;
5. count per severity (before the threshold);
6. apply the inclusive severity threshold (counted);
7. sort by severity descending, then path, line, column and rule id.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from ..rules.model import Severity
from ..rules.rule_set import RuleSet
from .matcher import RawMatch
from .report import Diagnostic, FileStats, Finding, ScanReport, SeverityCounts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllowlistEntry:
    """Suppress ``rule`` everywhere, or only in paths containing ``file``."""

    rule: str
    file: Optional[str] = None
    reason: str = ""

    def covers(self, match: RawMatch) -> bool:
        if match.rule_id != self.rule:
            return False
        return self.file is None or self.file in match.path


@dataclass(frozen=True)
class AggregateOptions:
    min_severity: Severity = Severity.INFO
    ignore: FrozenSet[str] = field(default_factory=frozenset)
    allowlist: Tuple[AllowlistEntry, ...] = ()


def deduplicate(findings: Iterable[Finding]) -> List[Finding]:
    """Drop findings whose (rule id, path, line, column) was already seen.

    Order is preserved and the first occurrence wins, so applying this twice
    gives the same result as applying it once.
    """
    seen: Set[Tuple[str, str, int, int]] = set()
    unique: List[Finding] = []
    for finding in findings:
        if finding.key in seen:
            continue
        seen.add(finding.key)
        unique.append(finding)
    return unique


def _to_finding(match: RawMatch, rule_set: RuleSet) -> Finding:
    rule = rule_set.get(match.rule_id)
    if rule is None:
        raise KeyError(f"match refers to unknown rule {match.rule_id}")
    return Finding(
        rule_id=rule.id,
        severity=rule.severity,
        category=rule.category,
        path=match.path,
        line=match.line,
        column=match.column,
        snippet=match.snippet,
        description=rule.description,
        recommendation=rule.recommendation,
        rule_name=rule.name,
        context=match.context,
    )


def aggregate(
    raw_matches: Iterable[RawMatch],
    rule_set: RuleSet,
    options: AggregateOptions = AggregateOptions(),
    diagnostics: Sequence[Diagnostic] = (),
    files: FileStats = FileStats(),
    root: str = "",
) -> ScanReport:
    """Build the scan report from raw matches."""
    ignore = frozenset(options.ignore)
    unknown = sorted(ignore - set(rule_set.ids))
    if unknown:
        logger.warning("Ignored rule id(s) not in the active rule set: %s", ", ".join(unknown))

    allowlisted = 0
    converted: List[Finding] = []
    for match in raw_matches:
        if match.rule_id in ignore:
            continue
        if any(entry.covers(match) for entry in options.allowlist):
            allowlisted += 1
            continue
        converted.append(_to_finding(match, rule_set))

    unique = deduplicate(converted)
    counts = SeverityCounts.tally(unique)
    shown = [f for f in unique if f.severity >= options.min_severity]
    shown.sort(key=lambda f: f.sort_key)

    logger.debug(
        "Aggregated %d finding(s): %d shown, %d below %s, %d allowlisted",
        len(unique), len(shown), len(unique) - len(shown), options.min_severity, allowlisted,
    )

    return ScanReport(
        root=root,
        findings=tuple(shown),
        counts=counts,
        min_severity=options.min_severity,
        suppressed_by_threshold=len(unique) - len(shown),
        allowlisted=allowlisted,
        active_rules=tuple(r for r in rule_set.ids if r not in ignore),
        ignored_rules=tuple(sorted(ignore)),
        files=files,
        diagnostics=tuple(diagnostics),
    )
