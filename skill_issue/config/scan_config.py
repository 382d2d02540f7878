"""
Scan Configuration - Loads and merges configuration from multiple sources.

Priority (highest to lowest):
1. CLI arguments
2. Config file (``--config``, else ``<root>/.skill-issue.yaml``, else
   ``./.skill-issue.yaml``). A file found inside the scanned directory only
   supplies rule filters (``IN_ROOT_KEYS``).
3. Environment variables (``SKILL_ISSUE_*``)
4. Scan mode defaults (strict/balanced/permissive)
5. Built-in defaults
"""

import copy
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..errors import ConfigError
from ..rules.model import Severity
from .modes import MODE_MAP, get_mode_overrides

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".skill-issue.yaml"

# Keys read from a config file found inside the scanned directory. That file
# ships with the skill, so it may only filter findings.
IN_ROOT_KEYS = {
    "rules": ("ignore", "disabled_rules", "severity_overrides", "allowlist"),
}

OUTPUT_FORMATS = ("text", "json", "sarif")
OVERSIZE_POLICIES = ("truncate", "skip")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ── Built-in defaults ──────────────────────────────────────────────

DEFAULT_CONFIG: Dict[str, Any] = {
    "scan_mode": "balanced",

    # Display threshold and exit-code level
    "thresholds": {
        "min_severity": "info",
        "error_on": "error",
    },

    # Rule configuration
    "rules": {
        "ignore": [],                   # Rule IDs dropped from results
        "disabled_rules": [],           # Rule IDs removed from the rule set
        "disabled_categories": [],      # Categories removed from the rule set
        "severity_overrides": {},       # {"SL-NET-001": "warning"}
        "allowlist": [],                # [{"rule": ..., "file": ..., "reason": ...}]
        "custom_rules_dir": None,       # Path to additional YAML rule files
    },

    # File handling
    "files": {
        "max_file_size_kb": 500,
        "oversize_policy": "truncate",  # "truncate" or "skip"
        "exclude_paths": [
            ".git", ".hg", ".svn", "node_modules", "__pycache__",
            ".venv", "venv", ".tox", ".mypy_cache", ".pytest_cache",
            ".skill-issue-cache",
        ],
    },

    # Match engine
    "engine": {
        "workers": 4,
    },

    # Output configuration
    "output": {
        "format": "text",       # "text", "json", "sarif"
        "output_file": None,
        "verbose": False,
        "quiet": False,
        "show_snippets": True,
        "max_findings_display": -1,     # -1 shows every finding
        "color": True,
    },

    # Logging
    "logging": {
        "level": "WARNING",
        "file": None,
        "redact_secrets": True,
    },
}


@dataclass
class ThresholdsConfig:
    """Display threshold and the level that makes the CLI exit with 2."""
    min_severity: str = "info"
    error_on: str = "error"


@dataclass
class RulesConfig:
    """Rule configuration."""
    ignore: List[str] = field(default_factory=list)
    disabled_rules: List[str] = field(default_factory=list)
    disabled_categories: List[str] = field(default_factory=list)
    severity_overrides: Dict[str, str] = field(default_factory=dict)
    allowlist: List[Dict[str, Any]] = field(default_factory=list)
    custom_rules_dir: Optional[str] = None


@dataclass
class FilesConfig:
    """File handling configuration."""
    max_file_size_kb: int = 500
    oversize_policy: str = "truncate"
    exclude_paths: List[str] = field(default_factory=lambda: list(
        DEFAULT_CONFIG["files"]["exclude_paths"]
    ))


@dataclass
class EngineConfig:
    """Match engine configuration."""
    workers: int = 4


@dataclass
class OutputConfig:
    """Output configuration."""
    format: str = "text"
    output_file: Optional[str] = None
    verbose: bool = False
    quiet: bool = False
    show_snippets: bool = True
    max_findings_display: int = -1
    color: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "WARNING"
    file: Optional[str] = None
    redact_secrets: bool = True


@dataclass
class ScanConfig:
    """Top-level scan configuration."""
    scan_mode: str = "balanced"
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)
    rules: RulesConfig = field(default_factory=RulesConfig)
    files: FilesConfig = field(default_factory=FilesConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def min_severity(self) -> Severity:
        return Severity.parse(self.thresholds.min_severity)

    @property
    def error_on(self) -> Severity:
        return Severity.parse(self.thresholds.error_on)

    @property
    def max_file_size(self) -> int:
        """Size ceiling in bytes."""
        return self.files.max_file_size_kb * 1024

    def validate(self) -> "ScanConfig":
        """Check every value that has a closed set of choices.

        Raises:
            ConfigError: describing the first invalid value.
        """
        if self.scan_mode not in MODE_MAP:
            raise ConfigError(
                f"scan_mode must be one of {', '.join(MODE_MAP)}, got '{self.scan_mode}'"
            )
        for name in ("min_severity", "error_on"):
            try:
                Severity.parse(getattr(self.thresholds, name))
            except ValueError as e:
                raise ConfigError(f"thresholds.{name}: {e}") from None
        for name in ("ignore", "disabled_rules", "disabled_categories"):
            _require_str_list(getattr(self.rules, name), f"rules.{name}")
        _require_str_list(self.files.exclude_paths, "files.exclude_paths")
        if not isinstance(self.rules.severity_overrides, dict):
            raise ConfigError("rules.severity_overrides must be a mapping of rule id to severity")
        if not isinstance(self.rules.allowlist, list):
            raise ConfigError("rules.allowlist must be a list")
        if self.rules.custom_rules_dir is not None and not isinstance(self.rules.custom_rules_dir, str):
            raise ConfigError("rules.custom_rules_dir must be a path")
        for rule_id, severity in self.rules.severity_overrides.items():
            try:
                Severity.parse(severity)
            except ValueError as e:
                raise ConfigError(f"rules.severity_overrides.{rule_id}: {e}") from None
        for index, entry in enumerate(self.rules.allowlist):
            if not isinstance(entry, dict) or not isinstance(entry.get("rule"), str):
                raise ConfigError(
                    f"rules.allowlist[{index}] must be a mapping with a 'rule' id"
                )
        if self.files.oversize_policy not in OVERSIZE_POLICIES:
            raise ConfigError(
                f"files.oversize_policy must be one of {', '.join(OVERSIZE_POLICIES)}, "
                f"got '{self.files.oversize_policy}'"
            )
        if not _is_int(self.files.max_file_size_kb) or self.files.max_file_size_kb <= 0:
            raise ConfigError("files.max_file_size_kb must be a positive integer")
        if not _is_int(self.engine.workers) or self.engine.workers < 1:
            raise ConfigError("engine.workers must be an integer of at least 1")
        if not _is_int(self.output.max_findings_display) or self.output.max_findings_display < -1:
            raise ConfigError("output.max_findings_display must be -1 (no limit) or a count")
        if self.output.format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"output.format must be one of {', '.join(OUTPUT_FORMATS)}, "
                f"got '{self.output.format}'"
            )
        if str(self.logging.level).upper() not in LOG_LEVELS:
            raise ConfigError(
                f"logging.level must be one of {', '.join(LOG_LEVELS)}, got '{self.logging.level}'"
            )
        return self


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require_str_list(value: Any, name: str) -> None:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{name} must be a list of strings, got {value!r}")


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base (override wins)."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_from_file(config_path: Path) -> Dict[str, Any]:
    """Load configuration from a YAML file."""
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"malformed config file {config_path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"cannot read config file {config_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_path} must contain a mapping")
    logger.debug("Loaded config file %s", config_path)
    return data


def _env_int(name: str) -> int:
    try:
        return int(os.environ[name])
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{os.environ[name]}'") from None


def _load_from_env() -> Dict[str, Any]:
    """Load configuration from environment variables."""
    env_config: Dict[str, Any] = {}

    # Scan mode
    mode = os.environ.get("SKILL_ISSUE_MODE")
    if mode:
        env_config["scan_mode"] = mode

    # Thresholds
    if os.environ.get("SKILL_ISSUE_SEVERITY"):
        env_config.setdefault("thresholds", {})["min_severity"] = os.environ["SKILL_ISSUE_SEVERITY"]
    if os.environ.get("SKILL_ISSUE_ERROR_ON"):
        env_config.setdefault("thresholds", {})["error_on"] = os.environ["SKILL_ISSUE_ERROR_ON"]

    # Engine
    if os.environ.get("SKILL_ISSUE_WORKERS"):
        env_config.setdefault("engine", {})["workers"] = _env_int("SKILL_ISSUE_WORKERS")

    # Verbose
    if os.environ.get("SKILL_ISSUE_VERBOSE", "").lower() in ("1", "true", "yes"):
        env_config.setdefault("output", {})["verbose"] = True

    # Log level
    if os.environ.get("SKILL_ISSUE_LOG_LEVEL"):
        env_config.setdefault("logging", {})["level"] = os.environ["SKILL_ISSUE_LOG_LEVEL"]

    return env_config


def _section(cls, data: Dict[str, Any], name: str):
    values = data.get(name) or {}
    if not isinstance(values, dict):
        raise ConfigError(f"config section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        logger.warning("Unknown key(s) in config section '%s': %s", name, ", ".join(unknown))
    return cls(**{k: v for k, v in values.items() if k in known and v is not None})


def _config_dict_to_dataclass(data: Dict[str, Any]) -> ScanConfig:
    """Convert a merged config dict to a ScanConfig dataclass."""
    return ScanConfig(
        scan_mode=str(data.get("scan_mode", "balanced")).lower(),
        thresholds=_section(ThresholdsConfig, data, "thresholds"),
        rules=_section(RulesConfig, data, "rules"),
        files=_section(FilesConfig, data, "files"),
        engine=_section(EngineConfig, data, "engine"),
        output=_section(OutputConfig, data, "output"),
        logging=_section(LoggingConfig, data, "logging"),
    )


def _is_within(path: Path, root: Path) -> bool:
    return path.resolve().is_relative_to(root.resolve())


def _restrict_in_root(data: Dict[str, Any], config_path: Path) -> Dict[str, Any]:
    """Keep only the ``IN_ROOT_KEYS`` of a config file from the scanned tree."""
    kept: Dict[str, Any] = {}
    dropped: List[str] = []
    for key, value in data.items():
        allowed = IN_ROOT_KEYS.get(key)
        if allowed is None:
            dropped.append(key)
        elif not isinstance(value, dict):
            kept[key] = value
        else:
            kept[key] = {k: v for k, v in value.items() if k in allowed}
            dropped.extend(f"{key}.{k}" for k in value if k not in allowed)
    if dropped:
        logger.warning(
            "Ignoring %s from %s: a config file inside the scanned directory may only set %s",
            ", ".join(sorted(dropped)),
            config_path,
            ", ".join(f"{section}.{k}" for section, keys in IN_ROOT_KEYS.items() for k in keys),
        )
    return kept


def find_config_file(scan_root: Optional[str] = None) -> Optional[Path]:
    """Return the first ``.skill-issue.yaml`` in the scan root or the CWD."""
    candidates = []
    if scan_root:
        candidates.append(Path(scan_root) / CONFIG_FILE_NAME)
    candidates.append(Path.cwd() / CONFIG_FILE_NAME)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def load_config(
    config_path: Optional[str] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    scan_root: Optional[str] = None,
) -> ScanConfig:
    """Load configuration with proper priority merging.

    Args:
        config_path: Path to a YAML config file. Auto-discovers if None.
        cli_overrides: Dict of CLI-level overrides.
        scan_root: Directory being scanned, searched for a config file. A
            discovered file inside it only contributes ``IN_ROOT_KEYS``.

    Returns:
        Merged, validated ScanConfig instance.

    Raises:
        ConfigError: unreadable or malformed config file, or an invalid value.
    """
    user_config: Dict[str, Any] = {}

    # Environment variables
    env_config = _load_from_env()
    if env_config:
        user_config = _deep_merge(user_config, env_config)

    # Config file
    if config_path:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigError(f"config file not found: {config_path}")
        file_config = _load_from_file(path)
    else:
        discovered = find_config_file(scan_root)
        file_config = _load_from_file(discovered) if discovered else {}
        if file_config and scan_root and _is_within(discovered, Path(scan_root)):
            file_config = _restrict_in_root(file_config, discovered)
    if file_config:
        user_config = _deep_merge(user_config, file_config)

    # CLI overrides (highest priority)
    if cli_overrides:
        user_config = _deep_merge(user_config, cli_overrides)

    # The mode sits between the built-in defaults and every explicit setting
    mode = user_config.get("scan_mode", DEFAULT_CONFIG["scan_mode"])
    merged = _deep_merge(copy.deepcopy(DEFAULT_CONFIG), get_mode_overrides(mode))
    final = _deep_merge(merged, user_config)

    return _config_dict_to_dataclass(final).validate()
