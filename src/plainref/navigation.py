"""Position-based navigation: go to definition, hover, and rename.

These are the queries an editor issues for "the word under the cursor".
They read the concept index through a ``ConceptLookup``; when no index is
attached, ``NullConceptLookup`` stands in and only import references resolve.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Protocol

from rich.console import Console

from plainref.config import DEFAULT_EXTENSION
from plainref.exceptions import RenameError
from plainref.indexer.extractor import ConceptOccurrence
from plainref.indexer.sections import is_valid_concept_name
from plainref.references import is_import_reference, resolve_reference
from plainref.rename import INVALID_NAME_MESSAGE, RenamePlan, build_rename_plan
from plainref.service import ConceptService, GroupedOccurrences, group_by_document_and_section

console = Console(stderr=True)

_WORD_RE = re.compile(r"[+\-.0-9A-Z_a-z]+")


class ConceptLookup(Protocol):
    """Read access to a concept index.

    Attributes:
        available: Capability flag. False only for ``NullConceptLookup``;
            navigation then skips concept queries and falls back to import
            references.
    """

    available: bool

    def find_concept_definition(self, name: str) -> list[ConceptOccurrence]: ...

    def find_concept_usage(self, name: str) -> list[ConceptOccurrence]: ...


class NullConceptLookup:
    """Lookup used when no concept index is attached."""

    available: ClassVar[bool] = False

    def find_concept_definition(self, name: str) -> list[ConceptOccurrence]:
        return []

    def find_concept_usage(self, name: str) -> list[ConceptOccurrence]:
        return []


@dataclass(frozen=True, slots=True)
class WordRange:
    """A word on a single line, ``[start, end)``."""

    line: int
    start: int
    end: int
    text: str


@dataclass(frozen=True, slots=True)
class Location:
    file_path: str
    line: int
    character: int


@dataclass
class HoverInfo:
    """What to show when hovering a concept.

    Attributes:
        concept: The concept name.
        is_definition: True when hovering a definition site; ``groups`` then
            holds usages, otherwise definitions.
        groups: Occurrences by document, then by section.
        range: The hovered word.
    """

    concept: str
    is_definition: bool
    range: WordRange
    groups: GroupedOccurrences = field(default_factory=dict)


def word_at(lines: Sequence[str], line: int, character: int) -> WordRange | None:
    """Return the concept-alphabet word touching the given position."""
    if not 0 <= line < len(lines):
        return None
    for match in _WORD_RE.finditer(lines[line]):
        if match.start() <= character <= match.end():
            return WordRange(line=line, start=match.start(), end=match.end(), text=match.group(0))
    return None


class ConceptNavigator:
    """Answers cursor-position queries for one workspace.

    Args:
        lookup: Concept index access, or None for no index.
        extension: Document extension used to resolve import references.
        search_paths: Extra folders searched for import references.
        debug: Print lookup traces.
    """

    def __init__(
        self,
        lookup: ConceptLookup | None = None,
        extension: str = DEFAULT_EXTENSION,
        search_paths: Sequence[str] = (),
        debug: bool = False,
    ) -> None:
        self._lookup: ConceptLookup = lookup if lookup is not None else NullConceptLookup()
        self._extension = extension
        self._search_paths = list(search_paths)
        self._debug = debug

    @classmethod
    def for_service(cls, service: ConceptService) -> ConceptNavigator:
        config = service.config
        return cls(
            service,
            extension=config.extension,
            search_paths=config.search_paths,
            debug=config.debug,
        )

    def definition_targets(
        self, document: Path, lines: Sequence[str], line: int, character: int
    ) -> list[Location]:
        """Go to definition.

        On a definition site this lists the concept's usages; elsewhere its
        definitions. With nothing indexed, falls back to import references.
        """
        word = word_at(lines, line, character)
        if word is None:
            return []

        if self._debug:
            console.print(f"[dim]definition lookup: {document} {line}:{character} '{word.text}'[/dim]")

        if self._lookup.available:
            occurrences, _ = self._related(lines, line, word.text)
            if occurrences:
                return [Location(o.file_path, o.line, o.character) for o in occurrences]

        if not is_import_reference(lines, line, word.text):
            return []
        target = resolve_reference(
            document, word.text, self._extension, self._search_paths, debug=self._debug
        )
        if target is None:
            return []
        return [Location(str(target), 0, 0)]

    def hover(self, lines: Sequence[str], line: int, character: int) -> HoverInfo | None:
        """Describe the concept under the cursor, or None if there is nothing to show."""
        if not self._lookup.available:
            return None
        word = word_at(lines, line, character)
        if word is None:
            return None

        occurrences, is_definition = self._related(lines, line, word.text)
        if not occurrences:
            return None
        return HoverInfo(
            concept=occurrences[0].concept,
            is_definition=is_definition,
            range=word,
            groups=group_by_document_and_section(occurrences),
        )

    def prepare_rename(self, lines: Sequence[str], line: int, character: int) -> WordRange:
        """Check that the word under the cursor can be renamed.

        Raises:
            RenameError: If there is no word, no index, or no such concept.
        """
        word = word_at(lines, line, character)
        if word is None:
            raise RenameError("No symbol found at this position")
        if not self._lookup.available:
            raise RenameError("Concept index not available")

        definitions = self._lookup.find_concept_definition(word.text)
        usages = self._lookup.find_concept_usage(word.text)
        if not definitions and not usages:
            raise RenameError(f"No concept found with name '{word.text}'")

        if self._debug:
            console.print(
                f"[dim]Preparing rename for concept: {word.text} "
                f"({len(definitions)} definitions, {len(usages)} usages)[/dim]"
            )
        return word

    def rename_edits(
        self, lines: Sequence[str], line: int, character: int, new_name: str
    ) -> RenamePlan:
        """Plan renaming the concept under the cursor to new_name.

        Raises:
            RenameError: If there is no word, new_name is invalid, there is
                no index, or the concept has no usages.
        """
        word = word_at(lines, line, character)
        if word is None:
            raise RenameError("No symbol found at this position")
        if not is_valid_concept_name(new_name):
            raise RenameError(INVALID_NAME_MESSAGE)
        if not self._lookup.available:
            raise RenameError("Concept index not available")
        return build_rename_plan(word.text, new_name, self._lookup.find_concept_usage(word.text))

    def _related(
        self, lines: Sequence[str], line: int, word: str
    ) -> tuple[list[ConceptOccurrence], bool]:
        """Usages when on a definition site, definitions otherwise."""
        if ConceptService.is_concept_definition(lines, line, word):
            return self._lookup.find_concept_usage(word), True
        return self._lookup.find_concept_definition(word), False
