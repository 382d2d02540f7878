"""
Rule model - severities and the immutable ``Rule`` record.

Rules are plain data: an id, a severity, a pattern and guidance text. Patterns
are compiled with RE2 (``google-re2``), which only accepts constructs that run
on a finite automaton. Lookahead, lookbehind and backreferences fail to
compile, so every accepted pattern matches in time linear in the input.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Tuple

import re2

from ..errors import InvalidRule
from .sections import category_for_code, get_section


class Severity(Enum):
    """Ordered risk level: ``info < warning < error``."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Parse a severity from text (case-insensitive) or pass one through."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"unknown severity: {value!r} (expected info, warning or error)")

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    def __str__(self) -> str:
        return self.value


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
}

# PREFIX-CODE-NNN, e.g. SL-NET-001
RULE_ID_PATTERN = re.compile(r"^([A-Z][A-Z0-9]{0,7})-([A-Z][A-Z0-9]{0,7})-(\d{3,4})$")

# Mapping of rule-file flag names to RE2 inline flags
FLAG_MAP = {
    "IGNORECASE": "i",
    "MULTILINE": "m",
    "DOTALL": "s",
}

# Maximum pattern length accepted from a rule file
MAX_PATTERN_LENGTH = 1000

# File extension -> file type used by a rule's ``applies_to``
EXTENSION_FILE_TYPES = {
    "md": "markdown",
    "mdx": "markdown",
    "sh": "script",
    "bash": "script",
    "zsh": "script",
    "py": "script",
    "rb": "script",
    "js": "script",
    "ts": "script",
    "yml": "yaml",
    "yaml": "yaml",
    "toml": "toml",
    "json": "json",
}

FILE_TYPES = ("markdown", "script", "yaml", "toml", "json", "unknown")

# Names accepted in ``applies_to`` besides the file types themselves
FILE_TYPE_ALIASES = {
    "md": "markdown",
    "sh": "script",
    "py": "script",
    "js": "script",
    "yml": "yaml",
}


def file_type_for(path: str) -> str:
    """Classify a file by the extension of its final path component."""
    name = path.rsplit("/", 1)[-1]
    if "." not in name.lstrip("."):
        return "unknown"
    return EXTENSION_FILE_TYPES.get(name.rsplit(".", 1)[-1].lower(), "unknown")


def parse_file_types(values: Any, rule_id: str = "") -> Tuple[str, ...]:
    """Normalize an ``applies_to`` list to file type names.

    Raises:
        InvalidRule: a value is not a known file type.
    """
    types = []
    for value in values:
        name = str(value).strip().lower()
        name = FILE_TYPE_ALIASES.get(name, name)
        if name not in FILE_TYPES:
            raise InvalidRule(
                f"unknown file type '{value}' in applies_to (expected {', '.join(FILE_TYPES)})",
                rule_id,
            )
        if name not in types:
            types.append(name)
    return tuple(types)


def _compile_options() -> "re2.Options":
    options = re2.Options()
    options.log_errors = False
    return options


def compile_pattern(pattern: str, flags: Tuple[str, ...] = (), rule_id: str = "") -> Any:
    """Compile *pattern* with RE2, applying rule-file flag names as inline flags.

    Raises:
        InvalidRule: unknown flag, over-long pattern, or a construct RE2 rejects
            (lookaround, backreferences, malformed syntax).
    """
    if not isinstance(pattern, str) or not pattern:
        raise InvalidRule("pattern must be a non-empty string", rule_id)
    if len(pattern) > MAX_PATTERN_LENGTH:
        raise InvalidRule(f"pattern too long (max {MAX_PATTERN_LENGTH})", rule_id)

    inline = ""
    for flag in flags:
        try:
            inline += FLAG_MAP[flag.upper()]
        except KeyError:
            raise InvalidRule(f"unknown pattern flag '{flag}'", rule_id) from None
    source = f"(?{inline}){pattern}" if inline else pattern

    try:
        return re2.compile(source, _compile_options())
    except re2.error as e:
        raise InvalidRule(f"pattern rejected by the linear-time engine: {e}", rule_id) from e


def parse_rule_id(rule_id: Any) -> Tuple[str, str, str]:
    """Split a rule id into (prefix, category code, sequence number)."""
    if not isinstance(rule_id, str):
        raise InvalidRule(f"rule id must be a string, got {rule_id!r}")
    m = RULE_ID_PATTERN.match(rule_id)
    if not m:
        raise InvalidRule(
            f"id '{rule_id}' does not match the PREFIX-CATEGORY-NNN shape (e.g. SL-NET-001)"
        )
    return m.group(1), m.group(2), m.group(3)


@dataclass(frozen=True)
class Rule:
    """A named, severity-tagged pattern describing one class of risk.

    Construction validates the id shape, parses the severity and compiles the
    pattern; an invalid record raises ``InvalidRule`` and never exists.
    """

    id: str
    severity: Severity
    pattern: str
    description: str
    recommendation: str
    name: str = ""
    pattern_flags: Tuple[str, ...] = ()
    references: Tuple[str, ...] = ()
    applies_to: Tuple[str, ...] = ()
    category: str = field(init=False)
    regex: Any = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        _, code, _ = parse_rule_id(self.id)
        try:
            severity = Severity.parse(self.severity)
        except ValueError as e:
            raise InvalidRule(str(e), self.id) from None
        for text_field in ("description", "recommendation"):
            if not isinstance(getattr(self, text_field), str):
                raise InvalidRule(f"{text_field} must be a string", self.id)

        flags = tuple(self.pattern_flags)
        object.__setattr__(self, "severity", severity)
        object.__setattr__(self, "pattern_flags", flags)
        object.__setattr__(self, "references", tuple(self.references))
        object.__setattr__(self, "applies_to", parse_file_types(self.applies_to, self.id))
        object.__setattr__(self, "name", self.name or self.id)
        object.__setattr__(self, "category", category_for_code(code))
        object.__setattr__(self, "regex", compile_pattern(self.pattern, flags, self.id))

    @property
    def section(self) -> str:
        return get_section(self.category)

    def applies_to_type(self, file_type: str) -> bool:
        """An empty ``applies_to`` means every file type."""
        return not self.applies_to or file_type in self.applies_to

    def to_dict(self) -> dict:
        """Convert rule to dictionary for serialization."""
        result = {
            "id": self.id,
            "name": self.name,
            "severity": self.severity.value,
            "category": self.category,
            "pattern": self.pattern,
            "description": self.description,
            "recommendation": self.recommendation,
        }
        if self.pattern_flags:
            result["pattern_flags"] = list(self.pattern_flags)
        if self.references:
            result["references"] = list(self.references)
        if self.applies_to:
            result["applies_to"] = list(self.applies_to)
        return result
