"""
Text Reporter - Human-readable scan summary for the terminal.
"""

from skill_issue.core.report import Diagnostic, Finding, ScanReport
from skill_issue.rules.model import Severity
from skill_issue.rules.sections import SECTION_DISPLAY_NAMES, SECTION_ORDER
from skill_issue.utils.redaction import redact_secrets

_COLORS = {
    Severity.ERROR: "\033[31m",
    Severity.WARNING: "\033[33m",
    Severity.INFO: "\033[36m",
}
_BOLD = "\033[1m"
_RESET = "\033[0m"

_DIAGNOSTIC_REASONS = {
    "decoding": "not valid UTF-8",
    "file-access": "unreadable",
    "oversize": "over the size limit",
    "symlink": "link outside the scanned directory",
    "traversal": "directory not scanned",
    "truncated": "truncated at the size limit",
    "pattern-application": "rule failed on file",
}


class TextReporter:
    """Renders a ScanReport as plain text, optionally with ANSI colors."""

    def __init__(
        self,
        color: bool = False,
        show_snippets: bool = True,
        max_findings: int = -1,
        redact: bool = True,
    ):
        self.color = color
        self.show_snippets = show_snippets
        self.max_findings = max_findings
        self.redact = redact

    def render(self, report: ScanReport) -> str:
        lines: list[str] = []
        lines.extend(self._findings_block(report))
        lines.extend(self._summary_block(report))
        lines.extend(self._diagnostics_block(report.diagnostics))
        return "\n".join(lines) + "\n"

    def _paint(self, text: str, code: str) -> str:
        return f"{code}{text}{_RESET}" if self.color else text

    def _quote(self, text: str) -> str:
        return redact_secrets(text) if self.redact else text

    def _findings_block(self, report: ScanReport) -> list[str]:
        lines: list[str] = []
        shown = report.findings[:self.max_findings] if self.max_findings >= 0 else report.findings

        for sec_key in SECTION_ORDER:
            section_findings = [f for f in shown if f.section == sec_key]
            if not section_findings:
                continue
            display = SECTION_DISPLAY_NAMES.get(sec_key, sec_key)
            lines.append("")
            lines.append(self._paint(f"{display.upper()} ({len(section_findings)})", _BOLD))
            lines.append("-" * 60)
            for finding in section_findings:
                lines.extend(self._finding_lines(finding))

        hidden = len(report.findings) - len(shown)
        if hidden > 0:
            lines.append("")
            lines.append(f"... and {hidden} more finding(s) not shown (use --format json for all)")
        return lines

    def _finding_lines(self, finding: Finding) -> list[str]:
        label = self._paint(f"[{finding.severity.value.upper()}]", _COLORS[finding.severity])
        lines = [
            "",
            f"{label} {finding.rule_id} {finding.rule_name}",
            f"   File: {finding.path}:{finding.line}:{finding.column}",
            f"   Category: {finding.category}",
            f"   Message: {finding.description}",
        ]
        if self.show_snippets and finding.snippet:
            lines.append(f"   Match: {self._quote(finding.snippet)}")
        if self.show_snippets and finding.context:
            lines.append(f"   Line: {self._quote(finding.context)}")
        lines.append(f"   Fix: {finding.recommendation}")
        return lines

    def _summary_block(self, report: ScanReport) -> list[str]:
        counts = report.counts
        files = report.files
        lines = [
            "",
            "=" * 60,
            "SCAN SUMMARY",
            "=" * 60,
            f"Root: {report.root}",
            f"Files: {files.scanned} scanned of {files.total} "
            f"({files.binary} binary, {files.skipped} skipped, {files.truncated} truncated)",
            f"Rules: {len(report.active_rules)} active, {len(report.ignored_rules)} ignored",
            f"Total findings: {counts.total}",
            f"  Error:   {counts.error}",
            f"  Warning: {counts.warning}",
            f"  Info:    {counts.info}",
            f"Displayed: {len(report.findings)} at or above {report.min_severity.value}",
        ]
        if report.suppressed_by_threshold:
            lines.append(f"Below threshold: {report.suppressed_by_threshold}")
        if report.allowlisted:
            lines.append(f"Allowlisted: {report.allowlisted}")
        if report.ignored_rules:
            lines.append(f"Ignored rules: {', '.join(report.ignored_rules)}")
        lines.append("=" * 60)
        return lines

    def _diagnostics_block(self, diagnostics: tuple[Diagnostic, ...]) -> list[str]:
        if not diagnostics:
            return []
        by_kind: dict[str, list[Diagnostic]] = {}
        for diagnostic in diagnostics:
            by_kind.setdefault(diagnostic.kind, []).append(diagnostic)

        lines = ["", "DIAGNOSTICS"]
        for kind in sorted(by_kind):
            entries = by_kind[kind]
            reason = _DIAGNOSTIC_REASONS.get(kind, kind)
            noun = "file" if len(entries) == 1 else "files"
            verb = "affected" if kind in ("truncated", "pattern-application") else "skipped"
            lines.append(f"  {len(entries)} {noun} {verb}: {reason}")
            for diagnostic in entries:
                rule = f" [{diagnostic.rule_id}]" if diagnostic.rule_id else ""
                lines.append(f"    - {diagnostic.path}{rule}: {diagnostic.message}")
        return lines
