"""
JSON Reporter - Outputs scan results in JSON format.

The document is ``ScanReport.to_dict()`` plus scanner metadata and per-section
counts. It carries no timestamps, so two scans of the same tree with the same
rules produce byte-identical output.
"""

import json
import os
from pathlib import Path
from typing import Any

from skill_issue import __version__
from skill_issue.core.report import ScanReport
from skill_issue.rules.sections import SECTION_ORDER
from skill_issue.utils.redaction import redact_finding_dict


def _validate_output_path(output_path: str) -> Path:
    """
    Validate and sanitize output file path.

    Args:
        output_path: User-provided output path

    Returns:
        Validated Path object

    Raises:
        ValueError: If path is invalid or potentially dangerous
    """
    if not output_path:
        raise ValueError("Output path cannot be empty")

    resolved = Path(output_path).resolve()

    # Block writes to system directories
    sensitive_dirs = [
        "/etc", "/usr", "/bin", "/sbin", "/boot", "/proc", "/sys",
        "/System", "/Library",  # macOS
        "C:\\Windows", "C:\\Program Files",  # Windows
    ]

    resolved_str = str(resolved)
    for sensitive in sensitive_dirs:
        if resolved_str == sensitive or resolved_str.startswith(sensitive + os.sep):
            raise ValueError(f"Cannot write to sensitive directory: {sensitive}")

    parent = resolved.parent
    if not parent.exists():
        raise ValueError(f"Parent directory does not exist: {parent}")

    if not os.access(parent, os.W_OK):
        raise ValueError(f"Parent directory is not writable: {parent}")

    # Never overwrite executables or scripts
    dangerous_extensions = [".exe", ".dll", ".so", ".sh", ".bash", ".zsh", ".py", ".rb"]
    if resolved.suffix.lower() in dangerous_extensions and resolved.exists():
        raise ValueError(f"Cannot overwrite executable file: {resolved}")

    return resolved


def write_output(text: str, output_path: str) -> Path:
    """Write rendered report text to a validated path."""
    validated_path = _validate_output_path(output_path)
    with open(validated_path, "w", encoding="utf-8") as f:
        f.write(text)
    return validated_path


class JSONReporter:
    """Generates JSON reports from scan results."""

    def __init__(self, redact: bool = True):
        """
        Args:
            redact: Mask secrets quoted in finding snippets and contexts.
        """
        self.redact = redact

    def generate(self, report: ScanReport) -> dict[str, Any]:
        """Generate a JSON report."""
        data = report.to_dict()
        if self.redact:
            data["findings"] = [redact_finding_dict(f) for f in data["findings"]]

        section_counts = {section: 0 for section in SECTION_ORDER}
        for finding in report.findings:
            section_counts[finding.section] = section_counts.get(finding.section, 0) + 1
        data["summary"]["section_counts"] = section_counts

        document = {
            "metadata": {
                "scanner": "skill-issue",
                "scanner_version": __version__,
                "root": Path(report.root).name if report.root else "unknown",
            },
            **data,
        }

        return document

    @staticmethod
    def render(document: dict[str, Any]) -> str:
        return json.dumps(document, indent=2) + "\n"
