"""
Content Extractor - walk a skill directory and yield its text files.

Files are yielded lazily, in lexicographic order of their POSIX path relative
to the root, and every ``iter()`` walks the tree again, so extraction is
restartable and order-stable. Binary files (NUL byte in the first 8 KiB) are
counted but never decoded. Text is decoded as strict UTF-8.

Oversized files follow ``oversize_policy``:

- ``truncate`` (default): the first ``max_file_size`` bytes are decoded, cut on
  a character boundary, and the file carries a note plus a ``truncated``
  diagnostic.
- ``skip``: the file is excluded with an ``oversize`` diagnostic.

Unreadable files, undecodable files, links escaping the root and unlistable
subdirectories become diagnostics; only an unusable root is fatal.
"""

import codecs
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from ..errors import DecodingError, FileAccessError, LocalizedError, TraversalError
from .report import Diagnostic, FileStats

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({
    ".git", ".svn", ".hg", "node_modules", "__pycache__",
    ".tox", ".venv", "venv", ".mypy_cache", ".pytest_cache",
    ".skill-issue-cache",
})

MAX_WALK_DEPTH = 20
SNIFF_BYTES = 8192
DEFAULT_MAX_FILE_SIZE = 500 * 1024
OVERSIZE_POLICIES = ("truncate", "skip")


@dataclass(frozen=True)
class ScannedFile:
    """Decoded text of one file, ready for matching."""

    path: str
    content: str
    size: int
    truncated: bool = False
    note: Optional[str] = None


class ContentExtractor:
    """Restartable, lazy sequence of ``ScannedFile`` records under *root*.

    ``stats`` and ``diagnostics`` describe the most recent walk; they are
    reset at the start of each iteration and are complete once the iterator
    is exhausted.
    """

    def __init__(
        self,
        root: str,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        oversize_policy: str = "truncate",
        skip_dirs: Iterable[str] = SKIP_DIRS,
        max_depth: int = MAX_WALK_DEPTH,
    ):
        if oversize_policy not in OVERSIZE_POLICIES:
            raise ValueError(
                f"oversize_policy must be one of {', '.join(OVERSIZE_POLICIES)}, "
                f"got {oversize_policy!r}"
            )
        if max_file_size <= 0:
            raise ValueError("max_file_size must be positive")
        self.root = Path(root)
        self.max_file_size = max_file_size
        self.oversize_policy = oversize_policy
        self.skip_dirs = frozenset(skip_dirs)
        self.max_depth = max_depth
        self.diagnostics: List[Diagnostic] = []
        self._counts = FileStats().to_dict()

    @property
    def stats(self) -> FileStats:
        return FileStats(**self._counts)

    def check_root(self) -> Path:
        """Resolve the root, raising ``TraversalError`` when it cannot be scanned."""
        if not self.root.exists():
            raise TraversalError(str(self.root), f"path does not exist: {self.root}")
        if not self.root.is_dir():
            raise TraversalError(str(self.root), f"path is not a directory: {self.root}")
        return self.root.resolve()

    def __iter__(self) -> Iterator[ScannedFile]:
        root = self.check_root()
        self.diagnostics = []
        self._counts = FileStats().to_dict()
        return self._walk(root, root, "", 0)

    def _walk(self, root: Path, directory: Path, prefix: str, depth: int) -> Iterator[ScannedFile]:
        try:
            entries = self._list_dir(directory)
        except OSError as e:
            error = TraversalError(prefix or ".", f"cannot list directory: {e.strerror or e}")
            if not prefix:
                raise error from e
            self._record(error)
            return

        for name, entry, is_dir in entries:
            rel_path = f"{prefix}{name}"
            if is_dir:
                if entry.is_symlink():
                    logger.debug("Not following directory link %s", rel_path)
                    self._check_link(root, entry, rel_path)
                    continue
                if depth + 1 > self.max_depth:
                    self._record(TraversalError(
                        rel_path, f"maximum directory depth {self.max_depth} exceeded; subtree skipped"
                    ))
                    continue
                yield from self._walk(root, Path(entry.path), f"{rel_path}/", depth + 1)
                continue

            if entry.is_symlink() and not self._check_link(root, entry, rel_path):
                continue
            try:
                if not entry.is_file():
                    continue
            except OSError:
                continue

            self._counts["total"] += 1
            try:
                scanned = self._read(Path(entry.path), rel_path)
            except LocalizedError as e:
                self._record(e)
                self._counts["skipped"] += 1
                continue
            if scanned is None:
                continue
            self._counts["scanned"] += 1
            yield scanned

    def _list_dir(self, directory: Path) -> list:
        """Return (name, entry, is_dir) triples in walk order.

        Directory names sort with a trailing ``/`` so that a depth-first walk
        yields files in plain lexicographic order of their relative path.
        """
        items = []
        with os.scandir(directory) as it:
            for entry in it:
                try:
                    is_dir = entry.is_dir()
                except OSError:
                    is_dir = False
                if is_dir and entry.name in self.skip_dirs:
                    continue
                items.append((entry.name, entry, is_dir))
        items.sort(key=lambda item: item[0] + "/" if item[2] else item[0])
        return items

    def _check_link(self, root: Path, entry: os.DirEntry, rel_path: str) -> bool:
        """Return True when a symbolic link resolves inside the root."""
        try:
            target = Path(entry.path).resolve()
        except (OSError, RuntimeError) as e:
            self._record(FileAccessError(rel_path, f"cannot resolve link: {e}"))
            return False
        try:
            target.relative_to(root)
        except ValueError:
            self.diagnostics.append(Diagnostic(
                kind="symlink",
                path=rel_path,
                message="symbolic link points outside the scanned directory; skipped",
            ))
            if not entry.is_dir():
                self._counts["total"] += 1
                self._counts["skipped"] += 1
            return False
        return True

    def _read(self, path: Path, rel_path: str) -> Optional[ScannedFile]:
        """Read and decode one file. Returns None for binary or skipped files."""
        try:
            size = path.stat().st_size
            with open(path, "rb") as handle:
                head = handle.read(SNIFF_BYTES)
                if b"\x00" in head:
                    logger.debug("Binary file excluded from matching: %s", rel_path)
                    self._counts["binary"] += 1
                    return None
                oversized = size > self.max_file_size
                if oversized and self.oversize_policy == "skip":
                    self.diagnostics.append(Diagnostic(
                        kind="oversize",
                        path=rel_path,
                        message=(
                            f"file is {size} bytes, over the {self.max_file_size}-byte "
                            "limit; skipped"
                        ),
                    ))
                    self._counts["skipped"] += 1
                    return None
                data = head + handle.read(max(self.max_file_size - len(head), 0))
        except OSError as e:
            raise FileAccessError(rel_path, f"cannot read file: {e.strerror or e}") from e

        truncated = len(data) > self.max_file_size or oversized
        data = data[:self.max_file_size]
        decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        try:
            content = decoder.decode(data, final=not truncated)
        except UnicodeDecodeError as e:
            raise DecodingError(
                rel_path, f"not valid UTF-8 text (byte offset {e.start}); excluded from matching"
            ) from e
        if content.startswith("\ufeff"):
            content = content[1:]

        note = None
        if truncated:
            note = f"truncated to the first {self.max_file_size} of {size} bytes"
            self.diagnostics.append(Diagnostic(kind="truncated", path=rel_path, message=note))
            self._counts["truncated"] += 1
        return ScannedFile(path=rel_path, content=content, size=size, truncated=truncated, note=note)

    def _record(self, error: LocalizedError) -> None:
        logger.debug("%s: %s", error.path, error)
        self.diagnostics.append(Diagnostic.from_error(error))
