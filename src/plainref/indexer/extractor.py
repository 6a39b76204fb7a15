"""Concept extraction from plain documents."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from plainref.indexer.sections import (
    CONCEPT_TOKEN_RE,
    DEFINITIONS_SECTION,
    definition_tokens,
    tag_sections,
)

console = Console(stderr=True)


@dataclass(frozen=True, slots=True)
class ConceptOccurrence:
    """A single sighting of a concept token.

    Attributes:
        concept: Bare concept name, without the surrounding colons.
        file_path: Absolute path of the owning document.
        line: Zero-based anchor line.
        character: Zero-based offset of the opening colon. For usages this is
            the offset inside ``content``, reported against ``line``.
        content: Source text the occurrence came from (a line or a block).
        section: Enclosing section name, "" when outside any section.
    """

    concept: str
    file_path: str
    line: int
    character: int
    content: str
    section: str | None = None


@dataclass
class ExtractionResult:
    """Everything extracted from one document.

    Attributes:
        file_path: Absolute path of the document.
        defined: Definition occurrences in document order.
        used: Usage occurrences in document order.
        error: Set when the document could not be read; both lists are then empty.
    """

    file_path: str
    defined: list[ConceptOccurrence] = field(default_factory=list)
    used: list[ConceptOccurrence] = field(default_factory=list)
    error: str | None = None


class ConceptExtractor:
    """Extracts concept definitions and usages from document text.

    Extraction is a pure function of the text. Only ``process_file`` touches
    the filesystem.
    """

    def __init__(self, debug: bool = False) -> None:
        self._debug = debug

    async def process_file(self, file_path: Path | str) -> ExtractionResult:
        """Read a document and extract its concepts.

        Read failures are contained: the result carries an error marker and
        no occurrences.

        Args:
            file_path: Absolute path of the document.

        Returns:
            The extraction result for the document.
        """
        path = Path(file_path)
        path_str = str(path)
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return ExtractionResult(
                file_path=path_str, error=f"Error processing file {path_str}: {exc}"
            )

        return self.extract(path_str, content)

    def extract(self, file_path: str, content: str) -> ExtractionResult:
        """Extract definitions and usages from already-loaded text."""
        lines = content.split("\n")
        return ExtractionResult(
            file_path=file_path,
            defined=self.extract_definitions(file_path, lines),
            used=self.extract_usages(file_path, lines),
        )

    def extract_definitions(self, file_path: str, lines: list[str]) -> list[ConceptOccurrence]:
        """Collect concepts declared by list items in ``definitions`` sections.

        A name repeated on the same list item is recorded once.
        """
        concepts: list[ConceptOccurrence] = []
        for tag in tag_sections(lines):
            if tag.is_header or tag.section != DEFINITIONS_SECTION:
                continue

            line = lines[tag.line_index]
            seen: set[str] = set()
            for name, column in definition_tokens(line):
                if name in seen:
                    continue
                seen.add(name)
                concepts.append(
                    ConceptOccurrence(
                        concept=name,
                        file_path=file_path,
                        line=tag.line_index,
                        character=column,
                        content=line,
                        section=tag.section,
                    )
                )
        return concepts

    def extract_usages(self, file_path: str, lines: list[str]) -> list[ConceptOccurrence]:
        """Collect concept tokens from every continuation block.

        An unindented line opens a block and the indented lines right after it
        extend it. Headers close the open block and never join one.
        """
        concepts: list[ConceptOccurrence] = []
        block: list[str] = []
        anchor = 0
        block_section = ""

        for tag in tag_sections(lines):
            line = lines[tag.line_index]
            if tag.is_header:
                self._flush_block(file_path, block, anchor, block_section, concepts)
                block = []
                continue

            if block and line[:1].isspace():
                block.append(line)
                continue

            self._flush_block(file_path, block, anchor, block_section, concepts)
            block = [line]
            anchor = tag.line_index
            block_section = tag.section

        self._flush_block(file_path, block, anchor, block_section, concepts)
        return concepts

    def _flush_block(
        self,
        file_path: str,
        block: list[str],
        anchor: int,
        section: str,
        out: list[ConceptOccurrence],
    ) -> None:
        """Append one occurrence per distinct concept found in block."""
        if not block:
            return

        text = "\n".join(block)
        if self._debug:
            console.print(f"[dim]block @{anchor} ({len(block)} lines): {escape(repr(text))}[/dim]")

        seen: set[str] = set()
        for match in CONCEPT_TOKEN_RE.finditer(text):
            name = match.group(0)[1:-1]
            if name in seen:
                continue
            seen.add(name)
            out.append(
                ConceptOccurrence(
                    concept=name,
                    file_path=file_path,
                    line=anchor,
                    character=match.start(),
                    content=text,
                    section=section,
                )
            )
