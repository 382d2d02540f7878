"""Shared fixtures: skill directories on disk and small rule sets."""

import logging

import pytest

from skill_issue.rules import Rule, RuleSet

ENV_VARS = (
    "SKILL_ISSUE_MODE",
    "SKILL_ISSUE_SEVERITY",
    "SKILL_ISSUE_ERROR_ON",
    "SKILL_ISSUE_WORKERS",
    "SKILL_ISSUE_LOG_LEVEL",
    "SKILL_ISSUE_VERBOSE",
    "NO_COLOR",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path_factory):
    """Keep host env vars and config files out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
    yield
    pkg_logger = logging.getLogger("skill_issue")
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
        handler.close()
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_skill(tmp_path):
    """Build a skill directory from a {relative path: str | bytes} mapping."""

    def _make(files, name="skill"):
        root = tmp_path / name
        root.mkdir()
        for rel_path, content in files.items():
            target = root / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content, encoding="utf-8")
        return root

    return _make


def make_rule(rule_id="SL-NET-001", severity="error", pattern=r"curl\s+-X\s+POST", **kwargs):
    kwargs.setdefault("description", f"{rule_id} description")
    kwargs.setdefault("recommendation", f"{rule_id} recommendation")
    return Rule(id=rule_id, severity=severity, pattern=pattern, **kwargs)


@pytest.fixture
def net_rule_set():
    """Only SL-NET-001 (error), matching ``curl -X POST``."""
    return RuleSet.build([make_rule()])


@pytest.fixture
def rule_factory():
    return make_rule
