"""Query and mutation facade over the concept index.

This is the surface editor integrations and the CLI talk to: index
lifecycle, lookups by name, rename planning, and the definition-site check.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import ClassVar

from rich.console import Console

from plainref.config import PlainRefConfig
from plainref.debounce import UpdateDebouncer
from plainref.indexer.extractor import ConceptExtractor, ConceptOccurrence
from plainref.indexer.index import ConceptIndex
from plainref.indexer.scanner import DocumentScanner
from plainref.indexer.sections import DEFINITIONS_SECTION, definition_tokens, section_at
from plainref.rename import RenamePlan, build_rename_plan

console = Console(stderr=True)

GroupedOccurrences = dict[str, dict[str, list[ConceptOccurrence]]]


class ConceptService:
    """Coordinates scanning, extraction, and queries for one workspace.

    Usage::

        service = ConceptService(load_config(Path.cwd()))
        await service.initialize()
        service.find_concept_definition("widget")
    """

    # ConceptLookup capability flag; see NullConceptLookup
    available: ClassVar[bool] = True

    def __init__(self, config: PlainRefConfig) -> None:
        self._config = config
        self._scanner = DocumentScanner(
            config.resolved_roots(),
            extension=config.extension,
            ignore_dirs=config.ignore_dirs,
            ignore_prefix=config.ignore_prefix,
        )
        self._index = ConceptIndex(self._scanner, ConceptExtractor(debug=config.debug))

    @property
    def config(self) -> PlainRefConfig:
        return self._config

    @property
    def index(self) -> ConceptIndex:
        return self._index

    async def initialize(self) -> None:
        """Index every document in the configured roots."""
        console.print(
            f"[blue]Indexer[/blue] scanning workspace for {self._config.extension} documents..."
        )
        await self.rebuild_index()

    async def rebuild_index(self) -> bool:
        """Rebuild the whole index.

        Returns:
            False if a rebuild was already running and this call was skipped.
        """
        return await self._index.rebuild()

    async def process_file_update(self, file_path: Path | str) -> None:
        """Reindex one document after it was created, changed, or deleted."""
        if self._config.debug:
            console.print(f"[dim]Reindexing {file_path}[/dim]")
        await self._index.update(file_path)

    def create_debouncer(self) -> UpdateDebouncer:
        """Debouncer that reindexes a path once its change events go quiet."""
        return UpdateDebouncer(self.process_file_update, self._config.debounce_delay)

    def find_concept_definition(self, name: str) -> list[ConceptOccurrence]:
        return self._index.lookup_definitions(name)

    def find_concept_usage(self, name: str) -> list[ConceptOccurrence]:
        return self._index.lookup_usages(name)

    def plan_rename(self, old_name: str, new_name: str) -> RenamePlan:
        """Build the edits that rename a concept everywhere it is used.

        Definition lines are usage sightings too, so they are rewritten as well.

        Raises:
            RenameError: If new_name is invalid or old_name has no usages.
        """
        plan = build_rename_plan(old_name, new_name, self._index.lookup_usages(old_name))
        if self._config.debug:
            console.print(
                f"[dim]Rename {old_name} -> {new_name}: {plan.replacement_count} replacements "
                f"in {len(plan.edits)} documents[/dim]"
            )
        return plan

    @staticmethod
    def is_concept_definition(lines: Sequence[str], line: int, word: str) -> bool:
        """Return True if word is declared by the definitions list item at line.

        Reads the document text directly; the stored index is not consulted.
        """
        if not 0 <= line < len(lines):
            return False
        if section_at(lines, line) != DEFINITIONS_SECTION:
            return False
        return any(name == word for name, _ in definition_tokens(lines[line]))


def group_by_document_and_section(occurrences: Iterable[ConceptOccurrence]) -> GroupedOccurrences:
    """Group occurrences as ``document -> section -> occurrences``.

    Occurrences without a section are left out.
    """
    grouped: GroupedOccurrences = {}
    for occurrence in occurrences:
        if not occurrence.section:
            continue
        by_section = grouped.setdefault(occurrence.file_path, {})
        by_section.setdefault(occurrence.section, []).append(occurrence)
    return grouped
