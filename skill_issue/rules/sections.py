"""
Category and section classification for rules and findings.

Rule ids follow the shape ``PREFIX-CODE-NNN`` (for example ``SL-NET-001``).
The middle ``CODE`` segment selects the rule's category, and every category
belongs to one of two top-level sections:

- **malicious**: intentional attack patterns (hidden content, prompt
  injection, social engineering, exfiltration over the network, obfuscation).
- **code_security**: risky practices and exposures (secrets, filesystem and
  process execution, metadata problems).

The code-to-category table is a contract with rule authors: a code must keep
its meaning across rule-pack versions.
"""

# ---------------------------------------------------------------------------
# Category code → category name
# ---------------------------------------------------------------------------

CATEGORY_CODES: dict[str, str] = {
    "HID": "hidden-content",
    "SEC": "secrets",
    "NET": "network",
    "FS": "filesystem",
    "EXEC": "execution",
    "INJ": "prompt-injection",
    "SOC": "social-engineering",
    "OBF": "obfuscation",
    "META": "metadata",
}

# ---------------------------------------------------------------------------
# Category → Section mapping
# ---------------------------------------------------------------------------

MALICIOUS_CATEGORIES: set[str] = {
    "hidden-content",
    "network",
    "prompt-injection",
    "social-engineering",
    "obfuscation",
}

SECTION_DISPLAY_NAMES: dict[str, str] = {
    "malicious": "Malicious Check",
    "code_security": "Code Security Issues",
}

# Ordered list for consistent display (malicious first)
SECTION_ORDER: list[str] = ["malicious", "code_security"]


def category_for_code(code: str) -> str:
    """Return the category name for a rule id's category code.

    Unknown codes map to their lower-cased form so third-party rule packs can
    introduce new categories without touching this table.
    """
    return CATEGORY_CODES.get(code.upper(), code.lower())


def get_section(category: str) -> str:
    """Return the section for a given category.

    Categories in ``MALICIOUS_CATEGORIES`` map to ``"malicious"``.
    Everything else (including unknown categories) defaults to ``"code_security"``.
    """
    if category in MALICIOUS_CATEGORIES:
        return "malicious"
    return "code_security"
