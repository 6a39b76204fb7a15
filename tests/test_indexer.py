"""Tests for the concept indexer."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from plainref.exceptions import IndexerError
from plainref.indexer.extractor import ConceptExtractor
from plainref.indexer.index import ConceptIndex
from plainref.indexer.scanner import DocumentScanner
from plainref.indexer.sections import (
    definition_tokens,
    header_name,
    is_valid_concept_name,
    section_at,
    tag_sections,
)


def _lines(text: str) -> list[str]:
    return text.split("\n")


def _positions(occurrences, name: str) -> list[tuple[int, int]]:
    return [(o.line, o.character) for o in occurrences if o.concept == name]


class TestDocumentScanner:
    def test_scan_plain_files(self, tmp_path: Path) -> None:
        (tmp_path / "a.plain").write_text("", encoding="utf-8")
        (tmp_path / "b.plain").write_text("", encoding="utf-8")
        (tmp_path / "readme.md").write_text("", encoding="utf-8")

        files = DocumentScanner([tmp_path]).scan()

        assert [f.name for f in files] == ["a.plain", "b.plain"]
        assert all(f.is_absolute() for f in files)

    def test_skips_ignored_and_marked_dirs(self, tmp_path: Path) -> None:
        for name in ("node_modules", ".hidden", "build", "specs"):
            (tmp_path / name).mkdir()
            (tmp_path / name / "x.plain").write_text("", encoding="utf-8")

        files = DocumentScanner([tmp_path]).scan()

        assert files == [(tmp_path / "specs" / "x.plain").resolve()]

    def test_custom_ignore_list_and_prefix(self, tmp_path: Path) -> None:
        for name in ("_drafts", "node_modules"):
            (tmp_path / name).mkdir()
            (tmp_path / name / "x.plain").write_text("", encoding="utf-8")

        scanner = DocumentScanner([tmp_path], ignore_dirs=[], ignore_prefix="_")
        files = scanner.scan()

        assert files == [(tmp_path / "node_modules" / "x.plain").resolve()]

    def test_multiple_roots_and_extension(self, tmp_path: Path) -> None:
        first, second = tmp_path / "one", tmp_path / "two"
        first.mkdir()
        second.mkdir()
        (first / "a.doc").write_text("", encoding="utf-8")
        (second / "b.doc").write_text("", encoding="utf-8")
        (second / "c.plain").write_text("", encoding="utf-8")

        files = DocumentScanner([first, second], extension=".doc").scan()

        assert [f.name for f in files] == ["a.doc", "b.doc"]

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        with pytest.raises(IndexerError):
            DocumentScanner([tmp_path / "nope"]).scan()

    def test_symlinked_document_listed_once(self, tmp_path: Path) -> None:
        real = tmp_path / "real.plain"
        real.write_text("", encoding="utf-8")
        try:
            (tmp_path / "link.plain").symlink_to(real)
        except OSError:
            pytest.skip("symlinks not supported")

        files = DocumentScanner([tmp_path]).scan()

        assert files == [real.resolve()]


class TestSections:
    def test_header_name(self) -> None:
        assert header_name("***Definitions***") == "definitions"
        assert header_name("  *** Functional Specs ***  ") == "functional specs"
        assert header_name("***bad*name***") is None
        assert header_name("** not a header **") is None

    def test_tag_sections(self) -> None:
        tags = list(tag_sections(["intro", "***a***", "x", "***b***", "y"]))

        assert [t.section for t in tags] == ["", "a", "a", "b", "b"]
        assert [t.is_header for t in tags] == [False, True, False, True, False]

    def test_section_at_walks_backward(self, widget_doc: str) -> None:
        lines = _lines(widget_doc)

        assert section_at(lines, 2) == "definitions"
        assert section_at(lines, 6) == "functional specs"
        assert section_at(["before", "***a***"], 0) == ""

    def test_definition_tokens(self) -> None:
        assert definition_tokens("- :a:, :b:") == [("a", 2), ("b", 7)]
        assert definition_tokens("  - :x:") == [("x", 4)]
        assert definition_tokens("text :a:") == []

    def test_definition_tokens_skip_invalid_names(self) -> None:
        assert definition_tokens("- :good:, :bad name:") == [("good", 2)]

    def test_concept_name_alphabet(self) -> None:
        assert is_valid_concept_name("a.b-c_d+1")
        assert not is_valid_concept_name("barbaz!")
        assert not is_valid_concept_name("bar\n")
        assert not is_valid_concept_name("")


class TestConceptExtractor:
    def test_co_definition_yields_two_definitions(self) -> None:
        text = "***definitions***\n- :a:, :b:\n"
        result = ConceptExtractor().extract("/doc.plain", text)

        assert [(o.concept, o.line, o.character) for o in result.defined] == [
            ("a", 1, 2),
            ("b", 1, 7),
        ]

    def test_definition_line_is_also_a_usage(self) -> None:
        text = "***definitions***\n- :a:, :b:\n"
        result = ConceptExtractor().extract("/doc.plain", text)

        assert _positions(result.used, "a") == [(1, 2)]
        assert _positions(result.used, "b") == [(1, 7)]

    def test_definitions_only_inside_definitions_section(self) -> None:
        text = "- :early:\n***notes***\n- :note:\n***definitions***\n- :real:\n"
        result = ConceptExtractor().extract("/doc.plain", text)

        assert [o.concept for o in result.defined] == ["real"]
        assert result.defined[0].section == "definitions"

    def test_duplicate_on_one_line_recorded_once(self) -> None:
        text = "***definitions***\n- :a:, :a:\n- :a:\n"
        result = ConceptExtractor().extract("/doc.plain", text)

        assert _positions(result.defined, "a") == [(1, 2), (2, 2)]

    def test_continuation_joins_block(self) -> None:
        text = "***definitions***\n- :widget:\n  A :widget: has a :color:."
        result = ConceptExtractor().extract("/doc.plain", text)

        assert _positions(result.defined, "widget") == [(1, 2)]
        assert _positions(result.used, "widget") == [(1, 2)]
        # offset inside "- :widget:\n  A :widget: has a :color:."
        assert _positions(result.used, "color") == [(1, 30)]
        color = next(o for o in result.used if o.concept == "color")
        assert color.content == "- :widget:\n  A :widget: has a :color:."
        assert color.section == "definitions"

    def test_usage_columns_in_sample_document(self, widget_doc: str) -> None:
        result = ConceptExtractor().extract("/w.plain", widget_doc)

        assert _positions(result.used, "widget") == [(1, 2), (6, 10)]
        assert _positions(result.used, "color") == [(1, 30), (3, 2), (6, 26)]
        assert _positions(result.used, "shade") == [(3, 11)]
        assert {o.section for o in result.used if o.line == 6} == {"functional specs"}

    def test_unindented_line_starts_new_block(self) -> None:
        text = "uses :a:\nuses :a: again\n"
        result = ConceptExtractor().extract("/doc.plain", text)

        assert _positions(result.used, "a") == [(0, 5), (1, 5)]

    def test_usages_outside_any_section_have_empty_section(self) -> None:
        result = ConceptExtractor().extract("/doc.plain", "see :x:")

        assert result.used[0].section == ""
        assert result.used[0].content == "see :x:"

    def test_final_block_is_flushed(self) -> None:
        result = ConceptExtractor().extract("/doc.plain", "first\n  then :tail:")

        assert _positions(result.used, "tail") == [(0, 13)]

    def test_header_closes_block(self) -> None:
        text = "intro :a:\n***s***\n  indented :b:\n"
        result = ConceptExtractor().extract("/doc.plain", text)

        assert _positions(result.used, "a") == [(0, 6)]
        # with no open block the indented line anchors its own block
        assert _positions(result.used, "b") == [(2, 11)]
        assert result.used[1].section == "s"

    def test_block_without_tokens_contributes_nothing(self) -> None:
        result = ConceptExtractor().extract("/doc.plain", "plain text\n  more text\n")

        assert result.used == []
        assert result.defined == []

    @pytest.mark.asyncio
    async def test_process_file(self, tmp_path: Path, widget_doc: str) -> None:
        doc = tmp_path / "w.plain"
        doc.write_text(widget_doc, encoding="utf-8")

        result = await ConceptExtractor().process_file(doc)

        assert result.error is None
        assert result.file_path == str(doc)
        assert {o.concept for o in result.defined} == {"widget", "color", "shade"}

    @pytest.mark.asyncio
    async def test_process_missing_file_sets_error(self, tmp_path: Path) -> None:
        result = await ConceptExtractor().process_file(tmp_path / "gone.plain")

        assert result.error is not None
        assert "gone.plain" in result.error
        assert result.defined == []
        assert result.used == []


class TestConceptIndex:
    def _index(self, root: Path) -> ConceptIndex:
        return ConceptIndex(DocumentScanner([root]), ConceptExtractor())

    @pytest.mark.asyncio
    async def test_rebuild_collects_all_documents(self, workspace: Path) -> None:
        index = self._index(workspace)

        assert await index.rebuild() is True

        assert len(index.documents()) == 2
        assert index.defined_names() == ["color", "order", "shade", "widget"]
        widget_users = {Path(o.file_path).name for o in index.lookup_usages("widget")}
        assert widget_users == {"widget.plain", "order.plain"}

    @pytest.mark.asyncio
    async def test_lookup_unknown_returns_empty_list(self, workspace: Path) -> None:
        index = self._index(workspace)
        await index.rebuild()

        assert index.lookup_definitions("nope") == []
        assert index.lookup_usages("nope") == []

    @pytest.mark.asyncio
    async def test_update_matches_fresh_extraction(
        self, workspace: Path, widget_doc: str
    ) -> None:
        index = self._index(workspace)
        await index.rebuild()
        doc = workspace / "widget.plain"

        await index.update(doc)
        await index.update(doc)

        fresh = ConceptExtractor().extract(str(doc), widget_doc)
        indexed = [o for name in index.concept_names() for o in index.lookup_usages(name)]
        mine = sorted(
            (o.concept, o.line, o.character) for o in indexed if o.file_path == str(doc)
        )
        assert mine == sorted((o.concept, o.line, o.character) for o in fresh.used)
        assert len(index.lookup_definitions("widget")) == 1

    @pytest.mark.asyncio
    async def test_update_removes_empty_keys(self, workspace: Path) -> None:
        index = self._index(workspace)
        await index.rebuild()
        doc = workspace / "widget.plain"

        doc.write_text("***definitions***\n- :widget:\n", encoding="utf-8")
        await index.update(doc)

        assert "shade" not in index.concept_names()
        assert index.lookup_definitions("shade") == []
        assert "color" not in index.defined_names()

    @pytest.mark.asyncio
    async def test_update_deleted_document(self, workspace: Path) -> None:
        index = self._index(workspace)
        await index.rebuild()
        doc = workspace / "sub" / "order.plain"

        doc.unlink()
        await index.update(doc)

        assert index.lookup_definitions("order") == []
        assert str(doc) in index.errors
        assert str(doc) not in index.documents()

    @pytest.mark.asyncio
    async def test_update_ignores_other_extensions(self, workspace: Path) -> None:
        index = self._index(workspace)
        await index.rebuild()
        before = index.lookup_usages("widget")

        await index.update(workspace / "notes.txt")

        assert index.lookup_usages("widget") == before

    @pytest.mark.asyncio
    async def test_rebuild_clears_both_mappings(self, workspace: Path) -> None:
        index = self._index(workspace)
        await index.rebuild()

        (workspace / "widget.plain").unlink()
        await index.rebuild()

        assert index.lookup_usages("shade") == []
        assert index.lookup_definitions("shade") == []

    @pytest.mark.asyncio
    async def test_unreadable_document_does_not_abort_rebuild(self, workspace: Path) -> None:
        (workspace / "broken.plain").write_bytes(b"\xff\xfe\xfa")
        index = self._index(workspace)

        await index.rebuild()

        assert str((workspace / "broken.plain").resolve()) in index.errors
        assert index.lookup_definitions("widget")

    @pytest.mark.asyncio
    async def test_update_during_rebuild_is_not_duplicated(self, tmp_path: Path) -> None:
        root = tmp_path.resolve()
        (root / "a.plain").write_text("***definitions***\n- :alpha:\n", encoding="utf-8")
        (root / "b.plain").write_text("***definitions***\n- :beta:\n", encoding="utf-8")
        index = self._index(root)

        rebuild = asyncio.create_task(index.rebuild())
        await asyncio.sleep(0)
        await index.update(root / "b.plain")
        assert await rebuild is True

        assert len(index.lookup_definitions("beta")) == 1
        assert len(index.lookup_usages("beta")) == 1
        assert len(index.lookup_definitions("alpha")) == 1

    @pytest.mark.asyncio
    async def test_update_through_symlink_replaces_entries(self, tmp_path: Path) -> None:
        root = tmp_path.resolve() / "root"
        root.mkdir()
        real = tmp_path.resolve() / "real.plain"
        real.write_text("***definitions***\n- :gamma:\n", encoding="utf-8")
        link = root / "link.plain"
        try:
            link.symlink_to(real)
        except OSError:
            pytest.skip("symlinks not supported")
        index = self._index(root)
        await index.rebuild()

        await index.update(link)

        assert [o.file_path for o in index.lookup_definitions("gamma")] == [str(real)]
        assert index.documents() == [str(real)]

    @pytest.mark.asyncio
    async def test_missing_root_releases_busy_flag(self, tmp_path: Path) -> None:
        index = self._index(tmp_path / "missing")

        await index.rebuild()

        assert index.is_indexing is False
        assert index.documents() == []
