"""Tests for the rule model, rule sets and YAML rule packs."""

import pytest

from skill_issue.errors import InvalidRule
from skill_issue.rules import Rule, RuleLoader, RuleSet, Severity, load_rule_set
from skill_issue.rules.model import file_type_for
from skill_issue.rules.rule_loader import DEFAULT_RULES_DIR


class TestSeverity:

    def test_total_order(self):
        assert Severity.INFO < Severity.WARNING < Severity.ERROR
        assert max([Severity.WARNING, Severity.ERROR, Severity.INFO]) is Severity.ERROR
        assert Severity.ERROR >= Severity.ERROR

    def test_parse_is_case_insensitive(self):
        assert Severity.parse("WARNING") is Severity.WARNING
        assert Severity.parse(" Info ") is Severity.INFO
        assert Severity.parse(Severity.ERROR) is Severity.ERROR

    @pytest.mark.parametrize("value", ["critical", "high", "", None, 2])
    def test_parse_rejects_other_values(self, value):
        with pytest.raises(ValueError):
            Severity.parse(value)


class TestRule:

    def test_valid_rule(self, rule_factory):
        rule = rule_factory()
        assert rule.severity is Severity.ERROR
        assert rule.category == "network"
        assert rule.section == "malicious"
        assert rule.name == "SL-NET-001"

    def test_unknown_category_code_is_lower_cased(self, rule_factory):
        rule = rule_factory(rule_id="ACME-XYZ-001")
        assert rule.category == "xyz"
        assert rule.section == "code_security"

    @pytest.mark.parametrize("rule_id", ["NET-001", "sl-net-001", "SL-NET-1", "SL_NET_001", ""])
    def test_bad_id_shape(self, rule_factory, rule_id):
        with pytest.raises(InvalidRule):
            rule_factory(rule_id=rule_id)

    def test_unknown_severity(self, rule_factory):
        with pytest.raises(InvalidRule, match="SL-NET-001"):
            rule_factory(severity="critical")

    @pytest.mark.parametrize("pattern", [
        r"foo(?=bar)",
        r"(?<!x)foo",
        r"(a)\1",
        r"unclosed(",
    ])
    def test_backtracking_constructs_and_bad_syntax_rejected(self, rule_factory, pattern):
        with pytest.raises(InvalidRule):
            rule_factory(pattern=pattern)

    def test_pattern_flags_become_inline_flags(self, rule_factory):
        rule = rule_factory(pattern="curl", pattern_flags=("IGNORECASE",))
        assert rule.regex.search("CURL") is not None

    def test_unknown_flag(self, rule_factory):
        with pytest.raises(InvalidRule, match="unknown pattern flag"):
            rule_factory(pattern_flags=("VERBOSE",))

    def test_to_dict(self, rule_factory):
        data = rule_factory(references=("https://example.com",)).to_dict()
        assert data["id"] == "SL-NET-001"
        assert data["severity"] == "error"
        assert data["category"] == "network"
        assert data["references"] == ["https://example.com"]
        assert "applies_to" not in data

    @pytest.mark.parametrize("path, file_type", [
        ("SKILL.md", "markdown"),
        ("docs/guide.mdx", "markdown"),
        ("scripts/run.sh", "script"),
        ("tool.PY", "script"),
        ("config.yml", "yaml"),
        ("pyproject.toml", "toml"),
        ("package.json", "json"),
        ("notes.txt", "unknown"),
        (".bashrc", "unknown"),
        ("Makefile", "unknown"),
    ])
    def test_file_type_for(self, path, file_type):
        assert file_type_for(path) == file_type

    def test_applies_to_accepts_aliases(self, rule_factory):
        rule = rule_factory(applies_to=("MD", "py", "yaml", "md"))
        assert rule.applies_to == ("markdown", "script", "yaml")
        assert rule.applies_to_type("script")
        assert not rule.applies_to_type("unknown")
        assert rule.to_dict()["applies_to"] == ["markdown", "script", "yaml"]

    def test_empty_applies_to_means_every_type(self, rule_factory):
        assert rule_factory().applies_to_type("unknown")

    def test_unknown_file_type(self, rule_factory):
        with pytest.raises(InvalidRule, match="unknown file type 'docx'"):
            rule_factory(applies_to=("docx",))


class TestRuleSet:

    def test_iteration_is_ordered_by_id(self, rule_factory):
        rules = [rule_factory(rule_id=i) for i in ("SL-NET-003", "SL-EXEC-001", "SL-NET-001")]
        assert RuleSet.build(rules).ids == ("SL-EXEC-001", "SL-NET-001", "SL-NET-003")

    def test_duplicate_id(self, rule_factory):
        with pytest.raises(InvalidRule, match="duplicate"):
            RuleSet.build([rule_factory(), rule_factory()])

    def test_rejects_non_rule_entries(self, rule_factory):
        with pytest.raises(InvalidRule):
            RuleSet.build([rule_factory(), {"id": "SL-NET-002"}])

    def test_lookup(self, rule_factory):
        rule_set = RuleSet.build([rule_factory(), rule_factory(rule_id="SL-FS-001")])
        assert rule_set.get("SL-FS-001").category == "filesystem"
        assert rule_set.get("SL-FS-999") is None
        assert "SL-NET-001" in rule_set
        assert [r.id for r in rule_set.by_category("network")] == ["SL-NET-001"]
        assert rule_set.categories() == ["filesystem", "network"]

    def test_with_overrides(self, rule_factory):
        rule_set = RuleSet.build([
            rule_factory(),
            rule_factory(rule_id="SL-FS-001"),
            rule_factory(rule_id="SL-SOC-001"),
        ])
        changed = rule_set.with_overrides(
            severity_overrides={"SL-NET-001": "info"},
            disabled_rules=["SL-FS-001"],
            disabled_categories=["social-engineering"],
        )
        assert changed.ids == ("SL-NET-001",)
        assert changed.get("SL-NET-001").severity is Severity.INFO
        assert changed.get("SL-NET-001").regex is not None
        # the original set is untouched
        assert rule_set.get("SL-NET-001").severity is Severity.ERROR
        assert len(rule_set) == 3

    def test_override_with_bad_severity(self, rule_factory):
        with pytest.raises(InvalidRule):
            RuleSet.build([rule_factory()]).with_overrides({"SL-NET-001": "urgent"})

    def test_stats(self, rule_factory):
        stats = RuleSet.build([rule_factory(), rule_factory(rule_id="SL-FS-001", severity="warning")]).stats()
        assert stats["total_rules"] == 2
        assert stats["rules_by_severity"] == {"info": 0, "warning": 1, "error": 1}
        assert stats["rules_by_category"] == {"filesystem": 1, "network": 1}


class TestBuiltinRules:

    def test_builtin_pack_loads(self):
        rule_set = load_rule_set()
        assert len(rule_set) >= 40
        assert "SL-NET-001" in rule_set
        assert rule_set.get("SL-NET-001").severity is Severity.ERROR

    def test_every_category_is_known(self):
        categories = set(load_rule_set().categories())
        assert categories == {
            "hidden-content", "secrets", "network", "filesystem",
            "execution", "prompt-injection", "social-engineering", "obfuscation",
        }

    def test_every_rule_has_guidance(self):
        for rule in load_rule_set():
            assert rule.description.strip(), rule.id
            assert rule.recommendation.strip(), rule.id

    def test_default_dir_ships_yaml(self):
        assert sorted(p.name for p in DEFAULT_RULES_DIR.glob("*.yaml"))


VALID_PACK = """
metadata:
  name: custom
  description: Custom test rules
  version: 2.0.0
rules:
  - id: ACME-NET-001
    severity: warning
    pattern: 'evil\\.example'
    description: Talks to evil.example
    recommendation: Remove it
  - id: ACME-NET-002
    severity: info
    pattern: 'disabled'
    description: Disabled rule
    recommendation: n/a
    enabled: false
"""


class TestRuleLoader:

    def test_custom_pack(self, tmp_path):
        (tmp_path / "custom.yaml").write_text(VALID_PACK)
        loader = RuleLoader([tmp_path]).load_all()
        rule_set = loader.build()
        assert rule_set.ids == ("ACME-NET-001",)
        assert loader.disabled == ["ACME-NET-002"]
        assert loader.packs[0].name == "custom"
        assert loader.packs[0].version == "2.0.0"

    def test_custom_pack_added_to_defaults(self, tmp_path):
        (tmp_path / "custom.yaml").write_text(VALID_PACK)
        rule_set = load_rule_set([tmp_path])
        assert "ACME-NET-001" in rule_set
        assert "SL-NET-001" in rule_set

    def test_missing_field(self, tmp_path):
        (tmp_path / "bad.yaml").write_text(
            "rules:\n  - id: ACME-NET-001\n    severity: error\n    pattern: x\n"
        )
        with pytest.raises(InvalidRule, match="missing required field"):
            load_rule_set([tmp_path], include_defaults=False)

    def test_lookahead_in_file_fails_the_whole_set(self, tmp_path):
        (tmp_path / "bad.yaml").write_text(
            "rules:\n"
            "  - id: ACME-NET-001\n"
            "    severity: error\n"
            "    pattern: 'a(?=b)'\n"
            "    description: d\n"
            "    recommendation: r\n"
        )
        with pytest.raises(InvalidRule, match="ACME-NET-001"):
            load_rule_set([tmp_path])

    def test_duplicate_across_files(self, tmp_path):
        (tmp_path / "a.yaml").write_text(VALID_PACK)
        (tmp_path / "b.yaml").write_text(VALID_PACK)
        with pytest.raises(InvalidRule, match="duplicate"):
            load_rule_set([tmp_path], include_defaults=False)

    def test_malformed_yaml(self, tmp_path):
        (tmp_path / "bad.yaml").write_text("rules: [unclosed\n")
        with pytest.raises(InvalidRule, match="YAML parsing error"):
            load_rule_set([tmp_path], include_defaults=False)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(InvalidRule, match="not found"):
            load_rule_set([tmp_path / "nope"], include_defaults=False)

    def test_load_single_file(self, tmp_path):
        pack = tmp_path / "single.yml"
        pack.write_text(VALID_PACK)
        rule_set = RuleLoader([]).load_file(pack).build()
        assert rule_set.ids == ("ACME-NET-001",)

    def test_applies_to_in_pack(self, tmp_path):
        (tmp_path / "targeted.yaml").write_text(
            "rules:\n"
            "  - id: ACME-INJ-001\n"
            "    severity: warning\n"
            "    pattern: 'ignore previous'\n"
            "    description: d\n"
            "    recommendation: r\n"
            "    applies_to: [markdown, yml]\n"
        )
        rule = load_rule_set([tmp_path], include_defaults=False).get("ACME-INJ-001")
        assert rule.applies_to == ("markdown", "yaml")

    @pytest.mark.parametrize("applies_to, message", [
        ("markdown", "must be lists"),
        ("[pdf]", "unknown file type"),
    ])
    def test_bad_applies_to_in_pack(self, tmp_path, applies_to, message):
        (tmp_path / "targeted.yaml").write_text(
            "rules:\n"
            "  - id: ACME-INJ-001\n"
            "    severity: warning\n"
            "    pattern: 'ignore previous'\n"
            "    description: d\n"
            "    recommendation: r\n"
            f"    applies_to: {applies_to}\n"
        )
        with pytest.raises(InvalidRule, match=message):
            load_rule_set([tmp_path], include_defaults=False)
