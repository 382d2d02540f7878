"""Core scanner components: extraction, matching, aggregation and the report."""

from .aggregator import AggregateOptions, AllowlistEntry, aggregate, deduplicate
from .extractor import ContentExtractor, ScannedFile
from .matcher import MatchEngine, RawMatch
from .report import Diagnostic, FileStats, Finding, ScanReport, SeverityCounts
from .scanner import SkillScanner, build_rule_set

__all__ = [
    "AggregateOptions",
    "AllowlistEntry",
    "ContentExtractor",
    "Diagnostic",
    "FileStats",
    "Finding",
    "MatchEngine",
    "RawMatch",
    "ScanReport",
    "ScannedFile",
    "SeverityCounts",
    "SkillScanner",
    "aggregate",
    "build_rule_set",
    "deduplicate",
]
