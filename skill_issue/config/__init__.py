"""Configuration management for the skill scanner."""

from .modes import get_mode_overrides, list_modes
from .scan_config import ScanConfig, find_config_file, load_config

__all__ = ["ScanConfig", "find_config_file", "get_mode_overrides", "list_modes", "load_config"]
