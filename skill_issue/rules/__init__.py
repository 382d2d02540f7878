"""
Security Rules Module

Rules are declarative records (id, severity, pattern, guidance) loaded from
YAML rule packs under ``yaml/``. Rule packs can be extended with a custom
directory without modifying Python code.

Usage:
    from skill_issue.rules import load_rule_set

    rule_set = load_rule_set()
    rule = rule_set.get("SL-NET-001")
    network_rules = rule_set.by_category("network")
"""

from .model import Rule, Severity
from .rule_loader import RuleLoader, RulePack, load_rule_set
from .rule_set import RuleSet

__all__ = [
    "Rule",
    "Severity",
    "RuleSet",
    "RuleLoader",
    "RulePack",
    "load_rule_set",
]
