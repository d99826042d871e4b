"""
Tests for drift classification and document scanning.
"""

from unittest.mock import patch

import pytest

from drifty.core.config import DriftyConfig
from drifty.core.drift import DriftEngine, Status, check_entry, discover_documents
from drifty.core.errors import HashingError, ScopeError
from drifty.core.frontmatter import WatchEntry
from drifty.core.paths import PathResolver

from conftest import sha256, write_doc


class TestCheckEntry:
    """The classification table, one row per test."""

    @pytest.fixture
    def resolver(self, project):
        (project / "src").mkdir()
        (project / "src" / "main.py").write_bytes(b"main")
        return PathResolver(project / "a.md")

    def test_no_hash_is_invalid(self, resolver):
        record = check_entry(resolver, WatchEntry("src/main.py", None), resolver.document_path, 0)
        assert record.status is Status.INVALID

    def test_empty_hash_is_invalid(self, resolver):
        record = check_entry(resolver, WatchEntry("gone.py", ""), resolver.document_path, 0)
        assert record.status is Status.INVALID

    def test_equal_digest_is_current(self, resolver):
        record = check_entry(resolver, WatchEntry("src/main.py", sha256(b"main")), resolver.document_path, 0)
        assert record.status is Status.CURRENT
        assert record.computed_hash == sha256(b"main")

    def test_different_digest_is_drifted(self, resolver):
        record = check_entry(resolver, WatchEntry("src/main.py", "0" * 64), resolver.document_path, 0)
        assert record.status is Status.DRIFTED
        assert record.computed_hash == sha256(b"main")

    def test_missing_literal_is_missing(self, resolver):
        record = check_entry(resolver, WatchEntry("src/gone.py", "0" * 64), resolver.document_path, 0)
        assert record.status is Status.MISSING
        assert "does not exist" in record.detail

    def test_empty_glob_is_missing(self, resolver):
        record = check_entry(resolver, WatchEntry("src/*.go", "0" * 64), resolver.document_path, 0)
        assert record.status is Status.MISSING

    def test_glob_of_empty_directories_is_missing(self, resolver):
        (resolver.document_dir / "build" / "out").mkdir(parents=True)
        record = check_entry(resolver, WatchEntry("build/*", "0" * 64), resolver.document_path, 0)
        assert record.status is Status.MISSING
        assert "matches no files" in record.detail
        assert record.computed_hash is None

    def test_no_project_root_is_invalid(self, tmp_path):
        resolver = PathResolver(tmp_path / "a.md", ["no-such-marker-anywhere-xyz"])
        record = check_entry(resolver, WatchEntry("$ROOT/x.py", "0" * 64), resolver.document_path, 0)
        assert record.status is Status.INVALID

    def test_escaping_root_is_invalid(self, resolver):
        record = check_entry(resolver, WatchEntry("$ROOT/../x.py", "0" * 64), resolver.document_path, 0)
        assert record.status is Status.INVALID

    def test_unreadable_at_hash_time_is_missing(self, resolver):
        with patch("drifty.core.drift.hash_target", side_effect=HashingError("src/main.py", "Permission denied")):
            record = check_entry(resolver, WatchEntry("src/main.py", "0" * 64), resolver.document_path, 0)
        assert record.status is Status.MISSING
        assert "Permission denied" in record.detail

    def test_status_tokens(self):
        assert [str(s) for s in Status] == ["CURRENT", "DRIFTED", "MISSING", "INVALID"]
        assert Status.DRIFTED.is_problem and Status.MISSING.is_problem
        assert not Status.CURRENT.is_problem and not Status.INVALID.is_problem


class TestDiscovery:
    """Finding documentation files."""

    def test_recursive_sorted_skipping_hidden(self, project):
        for rel in ("b.md", "a.MD", "docs/c.markdown", "docs/notes.txt", ".github/x.md", "docs/.draft.md"):
            path = project / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("x")

        found = discover_documents(project, DriftyConfig())
        names = [p.relative_to(project).as_posix() for p in found]
        assert names == sorted(names)
        assert set(names) == {"a.MD", "b.md", "docs/c.markdown"}

    def test_exclude_patterns(self, project):
        (project / "vendor").mkdir()
        (project / "vendor" / "x.md").write_text("x")
        (project / "keep.md").write_text("x")
        found = discover_documents(project, DriftyConfig(exclude=["vendor"]))
        assert [p.name for p in found] == ["keep.md"]

    def test_single_file(self, project):
        doc = project / "a.md"
        doc.write_text("x")
        assert discover_documents(doc, DriftyConfig()) == [doc]

    def test_non_markdown_file(self, project):
        f = project / "a.txt"
        f.write_text("x")
        with pytest.raises(ScopeError) as exc_info:
            discover_documents(f, DriftyConfig())
        assert "not a markdown file" in str(exc_info.value)

    def test_missing_scope(self, project):
        with pytest.raises(ScopeError):
            discover_documents(project / "nope", DriftyConfig())


class TestDriftEngine:
    """Scanning documents."""

    def test_scan_mixed_statuses(self, project):
        (project / "src").mkdir()
        (project / "src" / "same.py").write_bytes(b"same")
        (project / "src" / "changed.py").write_bytes(b"new")
        doc = write_doc(project / "docs" / "a.md", [
            ("$ROOT/src/same.py", sha256(b"same")),
            ("$ROOT/src/changed.py", sha256(b"old")),
            ("$ROOT/src/gone.py", sha256(b"gone")),
            ("$ROOT/src/nohash.py", None),
        ])

        result = DriftEngine().scan(project)
        statuses = [r.status for r in result.documents[doc].records]
        assert statuses == [Status.CURRENT, Status.DRIFTED, Status.MISSING, Status.INVALID]
        assert [r.index for r in result.records()] == [0, 1, 2, 3]
        assert result.has_problems
        assert [r.path_spec for r in result.eligible()] == ["$ROOT/src/changed.py", "$ROOT/src/gone.py"]

    def test_documents_without_key_skipped(self, project):
        (project / "plain.md").write_text("# No frontmatter\n")
        (project / "other.md").write_text("---\ntitle: x\n---\n")
        result = DriftEngine().scan(project)
        assert result.documents == {}

    def test_parse_error_does_not_abort_scan(self, project):
        (project / "x.py").write_bytes(b"x")
        broken = project / "a_broken.md"
        broken.write_text("---\ndriftwatcher: [oops\n---\n")
        good = write_doc(project / "b_good.md", [("x.py", sha256(b"x"))])

        result = DriftEngine().scan(project)

        assert result.documents[good].records[0].status is Status.CURRENT
        assert [path for path, _ in result.errors()] == [broken]
        assert not result.has_problems

    def test_unclosed_block_recorded(self, project):
        doc = project / "a.md"
        doc.write_text("---\ndriftwatcher:\n")
        result = DriftEngine().scan(doc)
        assert result.documents[doc].error
        assert "not closed" in result.documents[doc].error

    def test_custom_tracking_key(self, project):
        (project / "x.py").write_bytes(b"x")
        doc = project / "a.md"
        doc.write_text(f'---\nwatch:\n  - "x.py": {sha256(b"x")}\n---\n')
        result = DriftEngine(DriftyConfig(tracking_key="watch")).scan(project)
        assert result.documents[doc].records[0].status is Status.CURRENT

    def test_parallel_matches_sequential(self, project):
        entries = []
        for i in range(12):
            f = project / f"f{i}.py"
            f.write_bytes(str(i).encode())
            entries.append((f.name, sha256(str(i).encode()) if i % 3 else "0" * 64))
        doc = write_doc(project / "a.md", entries)

        sequential = DriftEngine(DriftyConfig(workers=1)).scan(doc)
        parallel = DriftEngine(DriftyConfig(workers=4)).scan(doc)
        assert sequential.documents[doc].records == parallel.documents[doc].records

    def test_counts(self, project):
        (project / "x.py").write_bytes(b"x")
        write_doc(project / "a.md", [("x.py", sha256(b"x")), ("y.py", "0" * 64)])
        counts = DriftEngine().scan(project).counts()
        assert counts[Status.CURRENT] == 1
        assert counts[Status.MISSING] == 1
        assert counts[Status.DRIFTED] == 0

    def test_scan_project_from_subdirectory(self, project):
        (project / "x.py").write_bytes(b"x")
        doc = write_doc(project / "a.md", [("x.py", sha256(b"x"))])
        (project / "deep" / "er").mkdir(parents=True)
        result = DriftEngine().scan_project(project / "deep" / "er")
        assert doc in result.documents
