"""
Scan Mode Profiles - Predefined configuration profiles for different scan use cases.

Modes:
- strict:     Every finding is shown and a warning already fails the run. Good for
              security audits and marketplace approval.
- balanced:   Default. Every finding is shown; only errors fail the run.
- permissive: Info findings are hidden and the social-engineering category is
              off. Good for quick checks of noisy or legacy skills.
"""

import copy
from typing import Any, Dict, List

from ..errors import ConfigError


# ── Strict Mode ────────────────────────────────────────────────────
STRICT_OVERRIDES: Dict[str, Any] = {
    "thresholds": {
        "min_severity": "info",
        "error_on": "warning",
    },
    "files": {
        "oversize_policy": "truncate",
    },
}


# ── Balanced Mode (default) ───────────────────────────────────────
BALANCED_OVERRIDES: Dict[str, Any] = {
    "thresholds": {
        "min_severity": "info",
        "error_on": "error",
    },
}


# ── Permissive Mode ───────────────────────────────────────────────
PERMISSIVE_OVERRIDES: Dict[str, Any] = {
    "thresholds": {
        "min_severity": "warning",
        "error_on": "error",
    },
    "rules": {
        "disabled_categories": ["social-engineering"],
    },
}


MODE_MAP = {
    "strict": STRICT_OVERRIDES,
    "balanced": BALANCED_OVERRIDES,
    "permissive": PERMISSIVE_OVERRIDES,
}


def get_mode_overrides(mode: str) -> Dict[str, Any]:
    """Get configuration overrides for a scan mode.

    Raises:
        ConfigError: *mode* is not one of strict, balanced, permissive.
    """
    try:
        return copy.deepcopy(MODE_MAP[str(mode).lower()])
    except KeyError:
        raise ConfigError(
            f"unknown scan mode '{mode}' (expected {', '.join(MODE_MAP)})"
        ) from None


def list_modes() -> List[Dict[str, str]]:
    """List all available scan modes with descriptions."""
    return [
        {
            "name": "strict",
            "description": "All findings shown; warnings fail the run. For security audits.",
        },
        {
            "name": "balanced",
            "description": "All findings shown; errors fail the run. Default.",
        },
        {
            "name": "permissive",
            "description": "Warnings and errors only, no social-engineering rules. For quick checks.",
        },
    ]
