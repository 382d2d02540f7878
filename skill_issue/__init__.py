"""skill-issue: static security analyzer for AI agent skill directories."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("skill-issue")
except PackageNotFoundError:
    __version__ = "0.0.0"
