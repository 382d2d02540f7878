"""
YAML Rule Loader

Loads rule packs from YAML files and turns them into ``Rule`` records. Every
problem found while loading is collected; ``build()`` then fails closed with
``InvalidRule`` if anything was wrong, so a scan never runs with a partial
rule set.

Rule file layout::

    metadata:
      name: network
      description: Network access and exfiltration
      version: 1.0.0
    rules:
      - id: SL-NET-001
        name: HTTP POST via curl
        severity: error
        pattern: 'curl\\s+-X\\s+POST'
        pattern_flags: [IGNORECASE]
        description: ...
        recommendation: ...
        references: [https://...]
        applies_to: [script, markdown]   # optional; default: every file
        enabled: true
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from ..errors import InvalidRule
from .model import Rule
from .rule_set import RuleSet

# Directory holding the built-in rule packs
DEFAULT_RULES_DIR = Path(__file__).parent / "yaml"

REQUIRED_FIELDS = ("id", "severity", "pattern", "description", "recommendation")


@dataclass
class RulePack:
    """Metadata of one rule file and the rules it contributed."""

    name: str
    description: str
    version: str
    path: str
    rules: List[Rule] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "path": self.path,
            "rules": [r.id for r in self.rules],
        }


class RuleLoader:
    """Loads rule packs from one or more directories of YAML files."""

    def __init__(self, rules_dirs: Optional[Iterable[Path]] = None):
        """
        Initialize the rule loader.

        Args:
            rules_dirs: Directories containing YAML rule files.
                        Defaults to the built-in ``rules/yaml/`` pack.
        """
        if rules_dirs is None:
            rules_dirs = [DEFAULT_RULES_DIR]
        self.rules_dirs = [Path(d) for d in rules_dirs]
        self.packs: List[RulePack] = []
        self.rules: List[Rule] = []
        self.disabled: List[str] = []
        self.errors: List[str] = []

    def load_all(self) -> "RuleLoader":
        """Load every ``*.yaml`` / ``*.yml`` file, in file-name order."""
        for rules_dir in self.rules_dirs:
            if not rules_dir.is_dir():
                self.errors.append(f"Rules directory not found: {rules_dir}")
                continue
            yaml_files = sorted(
                list(rules_dir.glob("*.yaml")) + list(rules_dir.glob("*.yml")),
                key=lambda p: p.name,
            )
            for yaml_file in yaml_files:
                self._load_file(yaml_file)
        return self

    def load_file(self, filepath: Path) -> "RuleLoader":
        """Load a single YAML rule file."""
        self._load_file(Path(filepath))
        return self

    def build(self) -> RuleSet:
        """Return the validated rule set, or raise if loading reported errors."""
        if self.errors:
            details = "\n  ".join(self.errors)
            raise InvalidRule(f"{len(self.errors)} rule loading error(s):\n  {details}")
        return RuleSet.build(self.rules)

    def _load_file(self, filepath: Path) -> None:
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            self.errors.append(f"YAML parsing error in {filepath}: {e}")
            return
        except (OSError, UnicodeDecodeError) as e:
            self.errors.append(f"Error reading {filepath}: {e}")
            return

        if not content:
            self.errors.append(f"Empty rule file: {filepath}")
            return
        if not isinstance(content, dict):
            self.errors.append(f"Rule file must contain a mapping: {filepath}")
            return

        metadata = content.get("metadata") or {}
        pack = RulePack(
            name=str(metadata.get("name", filepath.stem)),
            description=str(metadata.get("description", "")),
            version=str(metadata.get("version", "1.0.0")),
            path=str(filepath),
        )

        rules_data = content.get("rules") or []
        if not isinstance(rules_data, list):
            self.errors.append(f"'rules' must be a list in {filepath}")
            return

        for index, rule_data in enumerate(rules_data):
            rule = self._parse_rule(rule_data, filepath, index)
            if rule is not None:
                pack.rules.append(rule)
                self.rules.append(rule)
        self.packs.append(pack)

    def _parse_rule(self, rule_data: Any, filepath: Path, index: int) -> Optional[Rule]:
        """Parse a single rule entry, recording any problem in ``errors``."""
        where = f"{filepath.name} rule #{index + 1}"
        if not isinstance(rule_data, dict):
            self.errors.append(f"{where}: entry must be a mapping")
            return None

        missing = [name for name in REQUIRED_FIELDS if name not in rule_data]
        if missing:
            self.errors.append(f"{where}: missing required field(s) {', '.join(missing)}")
            return None

        flags = rule_data.get("pattern_flags") or []
        references = rule_data.get("references") or []
        applies_to = rule_data.get("applies_to") or []
        if not all(isinstance(value, list) for value in (flags, references, applies_to)):
            self.errors.append(f"{where}: pattern_flags, references and applies_to must be lists")
            return None

        try:
            rule = Rule(
                id=rule_data["id"],
                severity=rule_data["severity"],
                pattern=rule_data["pattern"],
                description=rule_data["description"],
                recommendation=rule_data["recommendation"],
                name=str(rule_data.get("name") or ""),
                pattern_flags=tuple(str(f) for f in flags),
                references=tuple(str(r) for r in references),
                applies_to=tuple(applies_to),
            )
        except InvalidRule as e:
            self.errors.append(f"{where}: {e}")
            return None

        if not rule_data.get("enabled", True):
            self.disabled.append(rule.id)
            return None
        return rule


def load_rule_set(
    rules_dirs: Optional[Iterable[Path]] = None,
    include_defaults: bool = True,
) -> RuleSet:
    """Load rule packs and build a rule set.

    Args:
        rules_dirs: Extra directories of YAML rule files.
        include_defaults: Also load the built-in pack.

    Raises:
        InvalidRule: any rule file or rule entry is invalid.
    """
    dirs: List[Path] = [DEFAULT_RULES_DIR] if include_defaults else []
    dirs.extend(Path(d) for d in rules_dirs or ())
    return RuleLoader(dirs).load_all().build()
