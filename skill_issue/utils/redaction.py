"""
Secret redaction for rendered reports.

Findings from the secrets rules quote the credential they matched. Renderers
pass ``snippet`` and ``context`` through ``redact_secrets`` so that writing a
report never re-publishes the secret. The in-memory ``ScanReport`` keeps the
original text.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

_SECRET_PATTERNS: List[Tuple[re.Pattern, str]] = [
    # PEM private key bodies
    (
        re.compile(r"(-----BEGIN [A-Z ]*PRIVATE KEY-----)[\s\S]*?(-----END [A-Z ]*PRIVATE KEY-----|$)"),
        r"\1***PRIVATE_KEY_REDACTED***",
    ),
    # AWS access key IDs
    (re.compile(r"\b(?:AKIA|ASIA)[0-9A-Z]{16}\b"), "***AWS_KEY_REDACTED***"),
    # GitHub tokens
    (re.compile(r"gh[pousr]_[A-Za-z0-9]{36,}"), "***GITHUB_TOKEN_REDACTED***"),
    (re.compile(r"github_pat_[A-Za-z0-9_]{22,}"), "***GITHUB_TOKEN_REDACTED***"),
    # Anthropic / OpenAI API keys
    (re.compile(r"sk-ant-[A-Za-z0-9\-_]{20,}"), "***API_KEY_REDACTED***"),
    (re.compile(r"sk-(?:proj-)?[A-Za-z0-9]{20,}"), "***API_KEY_REDACTED***"),
    # Slack tokens
    (re.compile(r"xox[bpas]-[A-Za-z0-9\-]{10,}"), "***SLACK_TOKEN_REDACTED***"),
    # Bearer tokens
    (re.compile(r"(?i)(Bearer\s+)[A-Za-z0-9\-_\.=]{20,}"), r"\1***TOKEN_REDACTED***"),
    # password / secret / token / api_key assignments
    (
        re.compile(
            r'(?i)((?:password|passwd|secret|token|api_key|apikey|auth_token|access_token)'
            r'\s*[=:]\s*["\'])([^"\']{8,})(["\'])'
        ),
        r"\1***REDACTED***\3",
    ),
    # Long hex strings
    (re.compile(r"(?<=['\"\s=:])[0-9a-fA-F]{40,}(?=['\"\s,;]|$)"), "***HEX_REDACTED***"),
]

# Finding fields that quote scanned content
REDACTED_FIELDS = ("snippet", "context")


def redact_secrets(text: Optional[str]) -> str:
    """Redact common secret patterns from text."""
    if not text:
        return text or ""

    result = text
    for pattern, replacement in _SECRET_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def redact_finding_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a serialized finding with quoted content redacted."""
    redacted = dict(data)
    for name in REDACTED_FIELDS:
        if name in redacted:
            redacted[name] = redact_secrets(redacted[name])
    return redacted
