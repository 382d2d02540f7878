"""Tests for the content extractor."""

import os

import pytest

from skill_issue.core.extractor import ContentExtractor, ScannedFile
from skill_issue.errors import TraversalError


def _paths(extractor):
    return [f.path for f in extractor]


class TestWalkOrder:

    def test_lexicographic_relative_posix_paths(self, make_skill):
        root = make_skill({
            "b.md": "b",
            "a/z.md": "z",
            "a.md": "a",
            "a-b/x.md": "x",
            "a/b/c.md": "c",
        })
        paths = _paths(ContentExtractor(str(root)))
        assert paths == ["a-b/x.md", "a.md", "a/b/c.md", "a/z.md", "b.md"]
        assert paths == sorted(paths)

    def test_restartable(self, make_skill):
        root = make_skill({"one.md": "1", "two/three.md": "3"})
        extractor = ContentExtractor(str(root))
        first = list(extractor)
        second = list(extractor)
        assert first == second
        assert extractor.stats.scanned == 2

    def test_lazy(self, make_skill):
        root = make_skill({"a.md": "a", "b.md": "b"})
        iterator = iter(ContentExtractor(str(root)))
        assert next(iterator).path == "a.md"

    def test_ignored_directories(self, make_skill):
        root = make_skill({
            "SKILL.md": "ok",
            ".git/config": "x",
            "node_modules/pkg/index.js": "x",
            "__pycache__/m.pyc": "x",
            ".venv/lib.py": "x",
        })
        assert _paths(ContentExtractor(str(root))) == ["SKILL.md"]

    def test_custom_skip_dirs(self, make_skill):
        root = make_skill({"SKILL.md": "ok", "vendor/lib.js": "x"})
        assert _paths(ContentExtractor(str(root), skip_dirs=["vendor"])) == ["SKILL.md"]

    def test_max_depth(self, make_skill):
        root = make_skill({"a/b/c/deep.md": "x", "top.md": "y"})
        extractor = ContentExtractor(str(root), max_depth=2)
        assert _paths(extractor) == ["top.md"]
        assert [d.kind for d in extractor.diagnostics] == ["traversal"]


class TestFileHandling:

    def test_scanned_file_fields(self, make_skill):
        root = make_skill({"SKILL.md": "hello\n"})
        (scanned,) = list(ContentExtractor(str(root)))
        assert scanned == ScannedFile(path="SKILL.md", content="hello\n", size=6)

    def test_binary_is_counted_not_decoded(self, make_skill):
        root = make_skill({"logo.png": b"\x89PNG\x00\x01\x02", "SKILL.md": "text"})
        extractor = ContentExtractor(str(root))
        assert _paths(extractor) == ["SKILL.md"]
        stats = extractor.stats
        assert (stats.total, stats.scanned, stats.binary, stats.skipped) == (2, 1, 1, 0)
        assert extractor.diagnostics == []

    def test_invalid_utf8_is_a_diagnostic(self, make_skill):
        root = make_skill({"bad.txt": b"caf\xe9 \xff\xfe", "good.md": "ok"})
        extractor = ContentExtractor(str(root))
        assert _paths(extractor) == ["good.md"]
        (diagnostic,) = extractor.diagnostics
        assert diagnostic.kind == "decoding"
        assert diagnostic.path == "bad.txt"
        assert extractor.stats.skipped == 1

    def test_bom_is_removed(self, make_skill):
        root = make_skill({"SKILL.md": "\ufeffTitle".encode("utf-8")})
        (scanned,) = list(ContentExtractor(str(root)))
        assert scanned.content == "Title"

    def test_truncate_policy(self, make_skill):
        root = make_skill({"big.md": "0123456789abcdef"})
        extractor = ContentExtractor(str(root), max_file_size=10)
        (scanned,) = list(extractor)
        assert scanned.content == "0123456789"
        assert scanned.truncated is True
        assert scanned.size == 16
        assert "truncated" in scanned.note
        assert [d.kind for d in extractor.diagnostics] == ["truncated"]
        assert extractor.stats.truncated == 1

    def test_truncate_on_character_boundary(self, make_skill):
        root = make_skill({"big.md": "é" * 10})
        (scanned,) = list(ContentExtractor(str(root), max_file_size=5))
        assert scanned.content == "éé"
        assert scanned.truncated is True

    def test_skip_policy(self, make_skill):
        root = make_skill({"big.md": "x" * 100, "small.md": "ok"})
        extractor = ContentExtractor(str(root), max_file_size=50, oversize_policy="skip")
        assert _paths(extractor) == ["small.md"]
        (diagnostic,) = extractor.diagnostics
        assert diagnostic.kind == "oversize"
        assert diagnostic.path == "big.md"
        assert extractor.stats.skipped == 1

    def test_file_at_ceiling_is_not_truncated(self, make_skill):
        root = make_skill({"exact.md": "x" * 10})
        (scanned,) = list(ContentExtractor(str(root), max_file_size=10))
        assert scanned.truncated is False

    def test_invalid_policy(self, tmp_path):
        with pytest.raises(ValueError):
            ContentExtractor(str(tmp_path), oversize_policy="drop")


class TestLinksAndErrors:

    def test_link_inside_root_is_scanned(self, make_skill):
        root = make_skill({"SKILL.md": "target"})
        os.symlink(root / "SKILL.md", root / "alias.md")
        assert _paths(ContentExtractor(str(root))) == ["SKILL.md", "alias.md"]

    def test_link_escaping_root_is_skipped(self, make_skill, tmp_path):
        outside = tmp_path / "secret.txt"
        outside.write_text("do not read")
        root = make_skill({"SKILL.md": "ok"})
        os.symlink(outside, root / "leak.txt")
        extractor = ContentExtractor(str(root))
        assert _paths(extractor) == ["SKILL.md"]
        (diagnostic,) = extractor.diagnostics
        assert diagnostic.kind == "symlink"
        assert diagnostic.path == "leak.txt"

    def test_directory_links_are_not_followed(self, make_skill):
        root = make_skill({"docs/a.md": "a"})
        os.symlink(root / "docs", root / "mirror")
        assert _paths(ContentExtractor(str(root))) == ["docs/a.md"]

    def test_missing_root(self, tmp_path):
        with pytest.raises(TraversalError, match="does not exist"):
            list(ContentExtractor(str(tmp_path / "missing")))

    def test_root_is_a_file(self, tmp_path):
        target = tmp_path / "file.md"
        target.write_text("x")
        with pytest.raises(TraversalError, match="not a directory"):
            list(ContentExtractor(str(target)))

    @pytest.mark.skipif(hasattr(os, "geteuid") and os.geteuid() == 0,
                        reason="root can list any directory")
    def test_unlistable_subdirectory(self, make_skill):
        root = make_skill({"locked/a.md": "a", "SKILL.md": "ok"})
        locked = root / "locked"
        locked.chmod(0)
        try:
            extractor = ContentExtractor(str(root))
            assert _paths(extractor) == ["SKILL.md"]
            assert [d.kind for d in extractor.diagnostics] == ["traversal"]
        finally:
            locked.chmod(0o755)
