"""
Tests for frontmatter parsing, serialization, init and add.
"""

import pytest

from drifty.core.errors import (
    AlreadyInitializedError,
    DuplicateEntryError,
    FrontmatterParseError,
    InvalidDocumentError,
    NotInitializedError,
    TargetUnresolvableError,
)
from drifty.core.frontmatter import (
    FrontmatterStore,
    WatchEntry,
    add_watch,
    init_document,
    init_file,
    parse,
    serialize,
)
from drifty.core.hashing import hash_file

from conftest import sha256, write_doc

HASH_A = "a" * 64
HASH_B = "0123456789abcdef" * 4

DOC = f"""---
title: Architecture
# keep this comment
tags: [design, core]
driftwatcher:
  - "src/main.rs": {HASH_A}
  - "$ROOT/lib/**/*.rs": {HASH_B}
author:   someone
---
# Architecture

Body text with --- inside.
"""


class TestParse:
    """Reading the driftwatcher block."""

    def test_entries_in_order(self):
        fm = parse(DOC)
        assert fm.has_block
        assert fm.has_tracking_key
        assert fm.entries == [
            WatchEntry("src/main.rs", HASH_A),
            WatchEntry("$ROOT/lib/**/*.rs", HASH_B),
        ]

    def test_other_keys_kept(self):
        fm = parse(DOC)
        assert list(fm.raw_other_keys) == ["title", "tags", "author"]
        assert fm.raw_other_keys["tags"] == ["design", "core"]

    def test_no_block(self):
        fm = parse("# Just a heading\n")
        assert not fm.has_block
        assert fm.entries == []

    def test_block_without_key(self):
        fm = parse("---\ntitle: x\n---\nbody\n")
        assert fm.has_block
        assert not fm.has_tracking_key

    def test_null_key_is_empty(self):
        fm = parse("---\ndriftwatcher:\n---\n")
        assert fm.has_tracking_key
        assert fm.entries == []

    def test_dot_closing_marker(self):
        fm = parse('---\ndriftwatcher:\n  - "a.py": abc\n...\nbody\n')
        assert fm.entries == [WatchEntry("a.py", "abc")]

    def test_entry_without_hash(self):
        fm = parse('---\ndriftwatcher:\n  - "a.py":\n  - b.py\n---\n')
        assert [e.has_hash for e in fm.entries] == [False, False]
        assert [e.path_spec for e in fm.entries] == ["a.py", "b.py"]

    def test_numeric_hash_coerced_to_string(self):
        fm = parse('---\ndriftwatcher:\n  - "a.py": 12345\n---\n')
        assert fm.entries[0].stored_hash == "12345"

    def test_multi_key_mapping(self):
        fm = parse('---\ndriftwatcher:\n  - {"a.py": x1, "b.py": x2}\n---\n')
        assert [e.path_spec for e in fm.entries] == ["a.py", "b.py"]

    def test_duplicates_allowed(self):
        fm = parse('---\ndriftwatcher:\n  - "a.py": x1\n  - "a.py": x2\n---\n')
        assert len(fm.entries) == 2

    def test_custom_key(self):
        fm = parse('---\nwatch:\n  - "a.py": x1\n---\n', key="watch")
        assert fm.entries == [WatchEntry("a.py", "x1")]

    @pytest.mark.parametrize("text", [
        "---\ndriftwatcher:\n  - a.py: x\n",
        "---\ndriftwatcher: [unclosed\n---\n",
        "---\n- just\n- a list\n---\n",
        "---\ndriftwatcher: not-a-list\n---\n",
        "---\ndriftwatcher:\n  - 42\n---\n",
    ])
    def test_malformed(self, text):
        with pytest.raises(FrontmatterParseError):
            parse(text)


class TestSerialize:
    """Writing the block back."""

    def test_no_op_round_trip_is_byte_identical(self):
        assert serialize(parse(DOC), DOC) == DOC

    def test_no_op_preserves_crlf(self):
        text = DOC.replace("\n", "\r\n")
        assert serialize(parse(text), text) == text

    def test_update_touches_only_tracking_key(self):
        fm = parse(DOC)
        fm.entries[0].stored_hash = "f" * 64
        out = serialize(fm, DOC)

        assert f'  - "src/main.rs": {"f" * 64}\n' in out
        assert "# keep this comment\n" in out
        assert "tags: [design, core]\n" in out
        assert "author:   someone\n" in out
        assert out.endswith("# Architecture\n\nBody text with --- inside.\n")
        assert parse(out).entries[1] == WatchEntry("$ROOT/lib/**/*.rs", HASH_B)

    def test_remove_entry(self):
        fm = parse(DOC)
        del fm.entries[0]
        out = serialize(fm, DOC)
        assert "src/main.rs" not in out
        assert parse(out).entries == [WatchEntry("$ROOT/lib/**/*.rs", HASH_B)]

    def test_non_hex_hash_quoted(self):
        fm = parse('---\ndriftwatcher:\n---\n')
        fm.entries.append(WatchEntry("a.py", "1e10"))
        out = serialize(fm, '---\ndriftwatcher:\n---\n')
        assert parse(out).entries == [WatchEntry("a.py", "1e10")]

    def test_spec_with_quotes_round_trips(self):
        text = '---\ndriftwatcher:\n---\n'
        fm = parse(text)
        fm.entries.append(WatchEntry('we"ird: name.py', HASH_A))
        assert parse(serialize(fm, text)).entries == [WatchEntry('we"ird: name.py', HASH_A)]

    @pytest.mark.parametrize("tracked", [
        f'driftwatcher:\n  - "a.py": {HASH_A}\n# keep b too\n  - "b.py": {HASH_B}\n',
        f'driftwatcher:\n  - "a.py": {HASH_A}\n\n  # indented comment\n  - "b.py": {HASH_B}\n',
        f'driftwatcher:\n    - "a.py": {HASH_A}\n    - "b.py": {HASH_B}\n',
        f'driftwatcher:\n- "a.py": {HASH_A}\n- "b.py": {HASH_B}\n',
        f'driftwatcher: [\n  {{"a.py": {HASH_A}}},\n  {{"b.py": {HASH_B}}}\n]\n',
        f'driftwatcher: [{{"a.py": {HASH_A}}}, {{"b.py": {HASH_B}}}]\n',
        f'"driftwatcher":\n  - a.py: {HASH_A}  # inline\n  - b.py: {HASH_B}\n',
    ], ids=["column0-comment", "blank-and-comment", "four-spaces", "indentless",
            "flow-multiline", "flow-inline", "quoted-key"])
    def test_update_any_layout(self, tracked):
        text = f"---\ntitle: x\n{tracked}author: me\n---\nbody\n"
        fm = parse(text)
        assert [e.path_spec for e in fm.entries] == ["a.py", "b.py"]

        fm.entries[0].stored_hash = "c" * 64
        out = serialize(fm, text)
        reparsed = parse(out)

        assert reparsed.entries == [WatchEntry("a.py", "c" * 64), WatchEntry("b.py", HASH_B)]
        assert reparsed.raw_other_keys == {"title": "x", "author": "me"}
        assert out.startswith("---\ntitle: x\n")
        assert out.endswith("author: me\n---\nbody\n")

    def test_comment_before_next_key_kept(self):
        text = f'---\ndriftwatcher:\n  - "a.py": {HASH_A}\n\n# who wrote it\nauthor: me\n---\n'
        fm = parse(text)
        fm.entries.append(WatchEntry("b.py", HASH_B))
        out = serialize(fm, text)
        assert out.endswith("\n\n# who wrote it\nauthor: me\n---\n")
        assert len(parse(out).entries) == 2

    def test_update_keeps_crlf(self):
        text = DOC.replace("\n", "\r\n")
        fm = parse(text)
        fm.entries[0].stored_hash = "f" * 64
        out = serialize(fm, text)
        assert f'  - "src/main.rs": {"f" * 64}\r\n' in out
        assert "\n" not in out.replace("\r\n", "")

    def test_insert_block_keeps_crlf(self):
        assert init_document("# Title\r\n") == "---\r\ndriftwatcher:\r\n---\r\n# Title\r\n"

    def test_key_inside_flow_mapping_rejected(self):
        text = "---\n{title: x, driftwatcher: []}\n---\n"
        fm = parse(text)
        fm.entries.append(WatchEntry("a.py", HASH_A))
        with pytest.raises(FrontmatterParseError):
            serialize(fm, text)


class TestInit:
    """Adding an empty tracking key."""

    def test_no_block(self):
        out = init_document("# Title\n")
        assert out == "---\ndriftwatcher:\n---\n# Title\n"

    def test_existing_block(self):
        out = init_document("---\ntitle: x\n---\nbody\n")
        assert out == "---\ntitle: x\ndriftwatcher:\n---\nbody\n"

    def test_existing_block_without_trailing_newline(self):
        out = init_document("---\ntitle: x\n---")
        assert parse(out).has_tracking_key

    def test_already_initialized(self):
        with pytest.raises(AlreadyInitializedError):
            init_document(DOC)

    def test_init_file_twice(self, tmp_path):
        doc = tmp_path / "a.md"
        doc.write_text("# A\n")
        assert init_file(doc) is True
        content = doc.read_text()
        with pytest.raises(AlreadyInitializedError):
            init_file(doc)
        assert doc.read_text() == content

    def test_init_file_missing(self, tmp_path):
        with pytest.raises(InvalidDocumentError):
            init_file(tmp_path / "nope.md")

    def test_init_file_too_large(self, tmp_path):
        doc = tmp_path / "big.md"
        doc.write_text("x" * 100)
        with pytest.raises(InvalidDocumentError) as exc_info:
            init_file(doc, max_size=10)
        assert "too large" in str(exc_info.value)


class TestAddWatch:
    """Appending watch entries."""

    def test_add_computes_hash(self, project):
        doc = write_doc(project / "docs" / "a.md")
        (project / "src").mkdir()
        (project / "src" / "main.py").write_bytes(b"print(1)\n")

        result = add_watch(doc, "$ROOT/src/main.py")

        assert result.entry.stored_hash == sha256(b"print(1)\n")
        assert parse(doc.read_text()).entries == [
            WatchEntry("$ROOT/src/main.py", hash_file(project / "src" / "main.py"))
        ]

    def test_add_appends_after_existing(self, project):
        doc = write_doc(project / "a.md", [("old.py", HASH_A)])
        (project / "new.py").write_text("x")
        add_watch(doc, "new.py")
        specs = [e.path_spec for e in parse(doc.read_text()).entries]
        assert specs == ["old.py", "new.py"]

    def test_add_glob_and_directory(self, project):
        doc = write_doc(project / "a.md")
        (project / "pkg").mkdir()
        (project / "pkg" / "x.py").write_bytes(b"x")
        (project / "pkg" / "y.py").write_bytes(b"y")
        assert add_watch(doc, "pkg").entry.stored_hash == sha256(b"xy")
        result = add_watch(doc, "pkg/*.py")
        assert len(result.target.matched_paths) == 2

    def test_add_requires_init(self, project):
        doc = project / "a.md"
        doc.write_text("# A\n")
        (project / "x.py").write_text("x")
        with pytest.raises(NotInitializedError) as exc_info:
            add_watch(doc, "x.py")
        assert "drifty init" in str(exc_info.value)

    def test_add_duplicate(self, project):
        doc = write_doc(project / "a.md", [("x.py", HASH_A)])
        (project / "x.py").write_text("x")
        with pytest.raises(DuplicateEntryError):
            add_watch(doc, "x.py")

    def test_add_unresolvable(self, project):
        doc = write_doc(project / "a.md")
        content = doc.read_text()
        with pytest.raises(TargetUnresolvableError):
            add_watch(doc, "missing.py")
        with pytest.raises(TargetUnresolvableError):
            add_watch(doc, "*.nothing")
        assert doc.read_text() == content

    def test_add_missing_document(self, project):
        with pytest.raises(InvalidDocumentError):
            add_watch(project / "nope.md", "x.py")


class TestFrontmatterStore:
    """Index-addressed updates."""

    def test_update_hash_by_index(self, project):
        doc = write_doc(project / "a.md", [("a.py", HASH_A), ("a.py", HASH_B)])
        store = FrontmatterStore.load(doc)
        store.update_hash(1, "a.py", "c" * 64)
        assert store.save()
        assert [e.stored_hash for e in parse(doc.read_text()).entries] == [HASH_A, "c" * 64]

    def test_update_hash_mismatch(self, project):
        doc = write_doc(project / "a.md", [("a.py", HASH_A)])
        store = FrontmatterStore.load(doc)
        with pytest.raises(KeyError):
            store.update_hash(0, "b.py", HASH_B)
        with pytest.raises(KeyError):
            store.update_hash(3, "a.py", HASH_B)

    def test_remove_entries_all_or_nothing(self, project):
        doc = write_doc(project / "a.md", [("a.py", HASH_A), ("b.py", HASH_B)])
        store = FrontmatterStore.load(doc)
        with pytest.raises(KeyError):
            store.remove_entries([(0, "a.py"), (1, "zzz.py")])
        assert len(store.entries) == 2
        store.remove_entries([(0, "a.py")])
        assert [e.path_spec for e in store.entries] == ["b.py"]

    def test_unchanged_store_does_not_write(self, project):
        doc = write_doc(project / "a.md", [("a.py", HASH_A)])
        mtime = doc.stat().st_mtime_ns
        store = FrontmatterStore.load(doc)
        assert not store.modified
        assert store.save() is False
        assert doc.stat().st_mtime_ns == mtime
