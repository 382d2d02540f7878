"""Reporters for outputting scan results."""

from .json_reporter import JSONReporter
from .sarif_reporter import SARIFReporter
from .text_reporter import TextReporter

__all__ = ["JSONReporter", "SARIFReporter", "TextReporter"]
