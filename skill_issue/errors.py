"""
Exception hierarchy for the skill scanner.

Fatal errors (``InvalidRule``, ``ConfigError``, ``TraversalError`` on the
scan root) propagate to the CLI. Localized errors are raised inside the
content extractor and match engine and converted to ``Diagnostic`` records
at their boundary, so one bad file never aborts a scan.
"""

from typing import Optional


class SkillIssueError(Exception):
    """Base class for every error raised by the scanner."""


class InvalidRule(SkillIssueError):
    """A rule record or rule file cannot be used. Fatal to the whole scan."""

    def __init__(self, message: str, rule_id: Optional[str] = None):
        self.rule_id = rule_id
        if rule_id:
            message = f"rule {rule_id}: {message}"
        super().__init__(message)


class ConfigError(SkillIssueError):
    """The configuration file or a configuration value is invalid."""


class LocalizedError(SkillIssueError):
    """Base for errors that only affect one file (or one rule on one file)."""

    kind = "error"

    def __init__(self, path: str, message: str, rule_id: Optional[str] = None):
        self.path = path
        self.rule_id = rule_id
        super().__init__(message)


class TraversalError(LocalizedError):
    """A directory cannot be listed. Fatal when it is the scan root."""

    kind = "traversal"


class FileAccessError(LocalizedError):
    """A file cannot be opened or read."""

    kind = "file-access"


class DecodingError(LocalizedError):
    """File content is not valid UTF-8."""

    kind = "decoding"


class PatternApplicationError(LocalizedError):
    """A compiled pattern failed while running against one file."""

    kind = "pattern-application"
