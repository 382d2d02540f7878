"""Utility functions for the scanner."""

from .redaction import redact_finding_dict, redact_secrets

__all__ = [
    "redact_finding_dict",
    "redact_secrets",
]
