"""
SARIF Reporter - Outputs scan results in SARIF format for CI/CD integration.

SARIF (Static Analysis Results Interchange Format) is supported by:
- GitHub Advanced Security
- GitLab Security Dashboard
- Azure DevOps
- Many other security tools
"""

import json
from typing import Any

from skill_issue import __version__
from skill_issue.core.report import Finding, ScanReport
from skill_issue.rules.model import Severity
from skill_issue.rules.rule_set import RuleSet
from skill_issue.utils.redaction import redact_secrets


class SARIFReporter:
    """Generates SARIF reports from scan results."""

    SARIF_VERSION = "2.1.0"
    SCHEMA_URI = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"

    SEVERITY_TO_LEVEL = {
        Severity.ERROR: "error",
        Severity.WARNING: "warning",
        Severity.INFO: "note",
    }

    SEVERITY_TO_SCORE = {
        Severity.ERROR: 8.0,
        Severity.WARNING: 5.0,
        Severity.INFO: 2.0,
    }

    def __init__(self, rule_set: RuleSet | None = None, redact: bool = True):
        """
        Args:
            rule_set: Used for rule references in ``tool.driver.rules``.
            redact: Mask secrets quoted in snippets.
        """
        self.rule_set = rule_set
        self.redact = redact

    def generate(self, report: ScanReport) -> dict[str, Any]:
        """Generate a SARIF report."""
        rules = self._collect_rules(report.findings)
        rule_index = {rule_id: idx for idx, rule_id in enumerate(rules)}
        results = [self._finding_to_result(f, rule_index) for f in report.findings]

        sarif = {
            "$schema": self.SCHEMA_URI,
            "version": self.SARIF_VERSION,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": "skill-issue",
                            "version": __version__,
                            "rules": list(rules.values()),
                        }
                    },
                    "results": results,
                    "invocations": [
                        {
                            "executionSuccessful": True,
                            "toolExecutionNotifications": [
                                self._diagnostic_to_notification(d) for d in report.diagnostics
                            ],
                        }
                    ],
                }
            ],
        }

        return sarif

    @staticmethod
    def render(sarif: dict[str, Any]) -> str:
        return json.dumps(sarif, indent=2) + "\n"

    def _text(self, text: str) -> str:
        return redact_secrets(text) if self.redact else text

    def _collect_rules(self, findings: tuple[Finding, ...]) -> dict[str, dict]:
        """Collect unique rules from findings, in rule id order."""
        rules: dict[str, dict] = {}

        for finding in sorted(findings, key=lambda f: f.rule_id):
            if finding.rule_id in rules:
                continue
            descriptor = {
                "id": finding.rule_id,
                "name": finding.rule_name or finding.rule_id,
                "shortDescription": {
                    "text": finding.description,
                },
                "help": {
                    "text": finding.recommendation,
                },
                "defaultConfiguration": {
                    "level": self.SEVERITY_TO_LEVEL[finding.severity],
                },
                "properties": {
                    "security-severity": str(self.SEVERITY_TO_SCORE[finding.severity]),
                    "tags": [
                        "security",
                        finding.category,
                        f"severity:{finding.severity.value}",
                        f"section:{finding.section}",
                    ],
                },
            }
            rule = self.rule_set.get(finding.rule_id) if self.rule_set else None
            if rule is not None and rule.references:
                descriptor["helpUri"] = rule.references[0]
            rules[finding.rule_id] = descriptor

        return rules

    def _finding_to_result(self, finding: Finding, rule_index: dict[str, int]) -> dict[str, Any]:
        """Convert a finding to a SARIF result."""
        result: dict[str, Any] = {
            "ruleId": finding.rule_id,
            "ruleIndex": rule_index[finding.rule_id],
            "level": self.SEVERITY_TO_LEVEL[finding.severity],
            "message": {
                "text": finding.description,
            },
            "locations": [
                {
                    "physicalLocation": {
                        "artifactLocation": {
                            "uri": finding.path,
                        },
                        "region": {
                            "startLine": finding.line,
                            "startColumn": finding.column,
                            "snippet": {
                                "text": self._text(finding.snippet),
                            },
                        },
                    },
                }
            ],
            "fixes": [
                {
                    "description": {
                        "text": finding.recommendation,
                    }
                }
            ],
            "properties": {
                "section": finding.section,
                "category": finding.category,
            },
        }

        if finding.context:
            result["locations"][0]["physicalLocation"]["contextRegion"] = {
                "startLine": finding.line,
                "snippet": {
                    "text": self._text(finding.context),
                },
            }

        return result

    @staticmethod
    def _diagnostic_to_notification(diagnostic) -> dict[str, Any]:
        notification: dict[str, Any] = {
            "level": "warning",
            "message": {"text": f"{diagnostic.kind}: {diagnostic.message}"},
            "locations": [
                {"physicalLocation": {"artifactLocation": {"uri": diagnostic.path}}}
            ],
        }
        if diagnostic.rule_id:
            notification["associatedRule"] = {"id": diagnostic.rule_id}
        return notification
