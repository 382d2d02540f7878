"""
Scan Report - the immutable output of one scan, plus the shared records it is
made of (``Finding``, ``Diagnostic``, ``FileStats``, ``SeverityCounts``).

Everything here is plain data. ``to_dict()`` / ``from_dict()`` round-trip every
field, so the machine-readable form carries the complete report.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from ..errors import LocalizedError
from ..rules.model import Severity
from ..rules.sections import get_section


@dataclass(frozen=True)
class Finding:
    """A single deduplicated occurrence of a rule's pattern in a scanned file."""

    rule_id: str
    severity: Severity
    category: str
    path: str
    line: int
    column: int
    snippet: str
    description: str
    recommendation: str
    rule_name: str = ""
    context: str = ""

    @property
    def key(self) -> Tuple[str, str, int, int]:
        """Identity used for deduplication."""
        return (self.rule_id, self.path, self.line, self.column)

    @property
    def sort_key(self) -> Tuple[int, str, int, int, str]:
        """Severity descending, then path, line, column, rule id."""
        return (-self.severity.rank, self.path, self.line, self.column, self.rule_id)

    @property
    def section(self) -> str:
        return get_section(self.category)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        values = dict(data)
        values["severity"] = Severity.parse(values["severity"])
        return cls(**values)


@dataclass(frozen=True)
class Diagnostic:
    """A localized coverage gap: a file (or rule on a file) that was not fully scanned."""

    kind: str
    path: str
    message: str
    rule_id: Optional[str] = None

    @classmethod
    def from_error(cls, error: LocalizedError) -> "Diagnostic":
        return cls(kind=error.kind, path=error.path, message=str(error), rule_id=error.rule_id)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Diagnostic":
        return cls(**data)


@dataclass(frozen=True)
class FileStats:
    """File counts for one scan.

    ``total`` counts every regular file seen under the root (binary and
    skipped files included); ``scanned`` counts files whose text was matched.
    """

    total: int = 0
    scanned: int = 0
    binary: int = 0
    skipped: int = 0
    truncated: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileStats":
        return cls(**data)


@dataclass(frozen=True)
class SeverityCounts:
    """Finding counts per severity."""

    info: int = 0
    warning: int = 0
    error: int = 0

    @classmethod
    def tally(cls, findings: Iterable[Finding]) -> "SeverityCounts":
        counts = {s.value: 0 for s in Severity}
        for finding in findings:
            counts[finding.severity.value] += 1
        return cls(**counts)

    def get(self, severity: Severity) -> int:
        return getattr(self, severity.value)

    @property
    def total(self) -> int:
        return self.info + self.warning + self.error

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeverityCounts":
        return cls(**data)


@dataclass(frozen=True)
class ScanReport:
    """Ordered findings, summary counts and coverage information for one scan.

    ``counts`` covers every finding after ignore list, allowlist and
    deduplication, before the severity threshold, so totals do not depend on
    the display filter. ``findings`` holds only the findings at or above
    ``min_severity``.
    """

    root: str
    findings: Tuple[Finding, ...] = ()
    counts: SeverityCounts = field(default_factory=SeverityCounts)
    min_severity: Severity = Severity.INFO
    suppressed_by_threshold: int = 0
    allowlisted: int = 0
    active_rules: Tuple[str, ...] = ()
    ignored_rules: Tuple[str, ...] = ()
    files: FileStats = field(default_factory=FileStats)
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def highest_severity(self) -> Optional[Severity]:
        """Highest severity among the displayed findings, or None."""
        if not self.findings:
            return None
        return max(f.severity for f in self.findings)

    def at_or_above(self, severity: Severity) -> bool:
        """True when a displayed finding has at least *severity*."""
        highest = self.highest_severity
        return highest is not None and highest >= severity

    @property
    def has_errors(self) -> bool:
        return self.at_or_above(Severity.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "summary": {
                "counts": self.counts.to_dict(),
                "total": self.counts.total,
                "displayed": len(self.findings),
                "min_severity": self.min_severity.value,
                "suppressed_by_threshold": self.suppressed_by_threshold,
                "allowlisted": self.allowlisted,
                "highest_severity": (
                    self.highest_severity.value if self.highest_severity else None
                ),
            },
            "files": self.files.to_dict(),
            "active_rules": list(self.active_rules),
            "ignored_rules": list(self.ignored_rules),
            "findings": [f.to_dict() for f in self.findings],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanReport":
        summary = data["summary"]
        return cls(
            root=data["root"],
            findings=tuple(Finding.from_dict(f) for f in data["findings"]),
            counts=SeverityCounts.from_dict(summary["counts"]),
            min_severity=Severity.parse(summary["min_severity"]),
            suppressed_by_threshold=summary["suppressed_by_threshold"],
            allowlisted=summary["allowlisted"],
            active_rules=tuple(data["active_rules"]),
            ignored_rules=tuple(data["ignored_rules"]),
            files=FileStats.from_dict(data["files"]),
            diagnostics=tuple(Diagnostic.from_dict(d) for d in data["diagnostics"]),
        )
