"""
Rule Set - an immutable, validated collection of rules.

A rule set is built once per scan and only read afterwards, so worker threads
share it without locking. Iteration order is by rule id, ascending, which
makes matching and reporting order independent of how the rules were loaded.
"""

import dataclasses
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from ..errors import InvalidRule
from .model import Rule, Severity


class RuleSet:
    """Read-only, id-ordered collection of ``Rule`` records."""

    def __init__(self, rules: Tuple[Rule, ...]):
        # Use RuleSet.build(); the constructor trusts its input.
        self._rules = rules
        self._by_id: Mapping[str, Rule] = MappingProxyType({r.id: r for r in rules})
        by_category: Dict[str, List[Rule]] = {}
        for rule in rules:
            by_category.setdefault(rule.category, []).append(rule)
        self._by_category: Mapping[str, Tuple[Rule, ...]] = MappingProxyType(
            {cat: tuple(members) for cat, members in by_category.items()}
        )

    @classmethod
    def build(cls, rules: Iterable[Rule]) -> "RuleSet":
        """Validate *rules* and return a rule set.

        Raises:
            InvalidRule: an entry is not a ``Rule`` or two rules share an id.
                No partial rule set is ever returned.
        """
        seen: Set[str] = set()
        collected: List[Rule] = []
        for rule in rules:
            if not isinstance(rule, Rule):
                raise InvalidRule(f"expected a Rule record, got {type(rule).__name__}")
            if rule.id in seen:
                raise InvalidRule("duplicate rule id", rule.id)
            seen.add(rule.id)
            collected.append(rule)
        collected.sort(key=lambda r: r.id)
        return cls(tuple(collected))

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._by_id

    def __repr__(self) -> str:
        return f"RuleSet({len(self._rules)} rules)"

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(r.id for r in self._rules)

    def get(self, rule_id: str) -> Optional[Rule]:
        """Get a rule by its id."""
        return self._by_id.get(rule_id)

    def by_category(self, category: str) -> Tuple[Rule, ...]:
        """Get all rules in a category, in id order."""
        return self._by_category.get(category, ())

    def categories(self) -> List[str]:
        return sorted(self._by_category)

    def with_overrides(
        self,
        severity_overrides: Optional[Mapping[str, Any]] = None,
        disabled_rules: Iterable[str] = (),
        disabled_categories: Iterable[str] = (),
    ) -> "RuleSet":
        """Return a new rule set with configuration overrides applied.

        Disabled rules and categories are removed; severity overrides replace
        a rule's severity. An override naming an unknown severity raises
        ``InvalidRule``.
        """
        disabled = set(disabled_rules)
        disabled_cats = set(disabled_categories)
        overrides = dict(severity_overrides or {})

        rules: List[Rule] = []
        for rule in self._rules:
            if rule.id in disabled or rule.category in disabled_cats:
                continue
            if rule.id in overrides:
                try:
                    severity = Severity.parse(overrides[rule.id])
                except ValueError as e:
                    raise InvalidRule(f"severity override: {e}", rule.id) from None
                rule = dataclasses.replace(rule, severity=severity)
            rules.append(rule)
        return RuleSet(tuple(rules))

    def stats(self) -> Dict[str, Any]:
        """Get statistics about the rule set."""
        by_severity: Dict[str, int] = {s.value: 0 for s in Severity}
        for rule in self._rules:
            by_severity[rule.severity.value] += 1
        return {
            "total_rules": len(self._rules),
            "categories": len(self._by_category),
            "rules_by_severity": by_severity,
            "rules_by_category": {
                category: len(members)
                for category, members in sorted(self._by_category.items())
            },
        }

    def to_dict(self) -> Dict[str, Any]:
        """Export all rules as a dictionary."""
        return {
            "rules": [r.to_dict() for r in self._rules],
            "stats": self.stats(),
        }
