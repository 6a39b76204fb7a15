"""In-memory concept index with full rebuild and per-document updates."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from plainref.exceptions import IndexerError
from plainref.indexer.extractor import ConceptExtractor, ConceptOccurrence, ExtractionResult
from plainref.indexer.scanner import DocumentScanner

console = Console(stderr=True)

ConceptMap = dict[str, list[ConceptOccurrence]]


class ConceptIndex:
    """Owned store of concept definitions and usages.

    Both mappings are keyed by concept name. A document's occurrences are
    always replaced as a unit, and a concept whose list becomes empty is
    removed from the mapping.
    """

    def __init__(self, scanner: DocumentScanner, extractor: ConceptExtractor) -> None:
        """Initialize an empty index.

        Args:
            scanner: Source of document paths for rebuilds.
            extractor: Turns one document into occurrences.
        """
        self._scanner = scanner
        self._extractor = extractor
        self._definitions: ConceptMap = {}
        self._usages: ConceptMap = {}
        self._errors: dict[str, str] = {}
        self._documents: set[str] = set()
        self._indexing = False

    @property
    def is_indexing(self) -> bool:
        """True while a rebuild is running."""
        return self._indexing

    @property
    def errors(self) -> dict[str, str]:
        """Per-document read errors from the latest processing of each path."""
        return dict(self._errors)

    async def rebuild(self) -> bool:
        """Discard everything and re-index every discoverable document.

        Documents are processed one after another. A rebuild requested while
        another is running is skipped.

        Returns:
            True if the rebuild ran, False if it was skipped.
        """
        if self._indexing:
            console.print("[dim]Indexing already in progress, skipping...[/dim]")
            return False

        self._indexing = True
        try:
            self.clear()
            try:
                paths = self._scanner.scan()
            except IndexerError as exc:
                console.print(f"[red]Error during indexing:[/red] {escape(str(exc))}")
                return True

            for path in paths:
                result = await self._extractor.process_file(path)
                # an update() may have indexed this path while we were reading
                self.remove_document(result.file_path)
                self.add(result)

            console.print(
                f"[green]Indexer[/green] indexed [bold]{len(self._definitions)}[/bold] "
                f"unique concepts from [bold]{len(paths)}[/bold] documents"
            )
            return True
        finally:
            self._indexing = False

    async def update(self, file_path: Path | str) -> None:
        """Re-index a single document.

        Paths without the document extension are ignored. A document that no
        longer exists ends up with no occurrences and an error marker.
        """
        path_str = str(Path(file_path).resolve())
        if not self._scanner.matches(path_str):
            return

        self.remove_document(path_str)
        result = await self._extractor.process_file(path_str)
        self.add(result)

    def add(self, result: ExtractionResult) -> None:
        """Fold one extraction result into both mappings."""
        if result.error is not None:
            self._errors[result.file_path] = result.error
            console.print(f"[yellow]Warning[/yellow]: {escape(result.error)}")
            return

        self._errors.pop(result.file_path, None)
        self._documents.add(result.file_path)
        for occurrence in result.defined:
            self._definitions.setdefault(occurrence.concept, []).append(occurrence)
        for occurrence in result.used:
            self._usages.setdefault(occurrence.concept, []).append(occurrence)

    def remove_document(self, file_path: str) -> None:
        """Purge every occurrence tagged with file_path."""
        self._documents.discard(file_path)
        self._errors.pop(file_path, None)
        _purge(self._definitions, file_path)
        _purge(self._usages, file_path)

    def clear(self) -> None:
        self._definitions.clear()
        self._usages.clear()
        self._errors.clear()
        self._documents.clear()

    def lookup_definitions(self, name: str) -> list[ConceptOccurrence]:
        return list(self._definitions.get(name, []))

    def lookup_usages(self, name: str) -> list[ConceptOccurrence]:
        return list(self._usages.get(name, []))

    def concept_names(self) -> list[str]:
        """Every concept with at least one definition or usage, sorted."""
        return sorted(self._definitions.keys() | self._usages.keys())

    def defined_names(self) -> list[str]:
        return sorted(self._definitions)

    def documents(self) -> list[str]:
        """Paths of documents that were indexed without error, sorted."""
        return sorted(self._documents)


def _purge(mapping: ConceptMap, file_path: str) -> None:
    """Drop file_path's occurrences and delete keys left empty."""
    for name in list(mapping):
        kept = [o for o in mapping[name] if o.file_path != file_path]
        if kept:
            mapping[name] = kept
        else:
            del mapping[name]
