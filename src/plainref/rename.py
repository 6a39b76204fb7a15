"""Rename plans: per-document batches of textual replacements."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from plainref.exceptions import RenameError
from plainref.indexer.extractor import ConceptOccurrence
from plainref.indexer.sections import is_valid_concept_name

console = Console(stderr=True)

INVALID_NAME_MESSAGE = (
    "Invalid concept name. Use only letters, numbers, dots, hyphens, plus signs, and underscores."
)


@dataclass(frozen=True, slots=True)
class TextReplacement:
    """Replace ``[start, end)`` on ``line`` with ``new_text``.

    Positions are zero-based. ``start`` and ``end`` may run past the end of
    ``line`` for tokens found on continuation lines; they are then counted
    into the following lines, newline included.
    """

    line: int
    start: int
    end: int
    new_text: str


@dataclass
class DocumentEdit:
    """All replacements for one document."""

    file_path: str
    replacements: list[TextReplacement] = field(default_factory=list)


@dataclass
class RenamePlan:
    """Rewrites every usage of ``old_name`` to ``new_name``.

    Attributes:
        old_name: Concept being renamed.
        new_name: Replacement name, already validated.
        edits: One batch per document, in first-seen order.
    """

    old_name: str
    new_name: str
    edits: list[DocumentEdit] = field(default_factory=list)

    @property
    def replacement_count(self) -> int:
        return sum(len(edit.replacements) for edit in self.edits)


def build_rename_plan(
    old_name: str, new_name: str, usages: Iterable[ConceptOccurrence]
) -> RenamePlan:
    """Turn usage occurrences into a rename plan.

    Each replacement starts one character after the occurrence's column, which
    skips the opening colon, and spans the old name exactly.

    Args:
        old_name: Current concept name.
        new_name: Desired concept name.
        usages: Usage occurrences of old_name.

    Returns:
        The plan, grouped by document.

    Raises:
        RenameError: If new_name is not a valid concept name, or there are no usages.
    """
    if not is_valid_concept_name(new_name):
        raise RenameError(INVALID_NAME_MESSAGE)

    groups: dict[str, DocumentEdit] = {}
    for occurrence in usages:
        edit = groups.setdefault(occurrence.file_path, DocumentEdit(file_path=occurrence.file_path))
        start = occurrence.character + 1
        edit.replacements.append(
            TextReplacement(
                line=occurrence.line,
                start=start,
                end=start + len(old_name),
                new_text=new_name,
            )
        )

    if not groups:
        raise RenameError(f"No concept found with name '{old_name}'")

    return RenamePlan(old_name=old_name, new_name=new_name, edits=list(groups.values()))


def apply_replacements(
    text: str, replacements: Iterable[TextReplacement], expected: str | None = None
) -> str:
    """Apply replacements to document text.

    Args:
        text: Original document text.
        replacements: Replacements computed against ``text``.
        expected: When given, the text each replacement covers must equal it.

    Returns:
        The rewritten text.

    Raises:
        RenameError: If a replacement falls outside the text, overlaps
            another one, or, with ``expected``, covers something else (the
            index is stale). Identical replacements are applied once.
    """
    line_starts = [0]
    for line in text.split("\n"):
        line_starts.append(line_starts[-1] + len(line) + 1)

    spans: set[tuple[int, int, str]] = set()
    for rep in replacements:
        if rep.line >= len(line_starts) - 1:
            raise RenameError(f"Line {rep.line} is past the end of the document")
        start = line_starts[rep.line] + rep.start
        end = line_starts[rep.line] + rep.end
        if end > len(text):
            raise RenameError(f"Replacement at line {rep.line} runs past the end of the document")
        if expected is not None and text[start:end] != expected:
            raise RenameError(
                f"Expected '{expected}' at line {rep.line}, found '{text[start:end]}'; "
                "rebuild the index and retry"
            )
        spans.add((start, end, rep.new_text))

    ordered = sorted(spans)
    for previous, current in zip(ordered, ordered[1:]):
        if current[0] < previous[1]:
            raise RenameError(
                f"Overlapping replacements at offsets {previous[0]} and {current[0]}"
            )

    for start, end, new_text in reversed(ordered):
        text = text[:start] + new_text + text[end:]
    return text


def apply_rename_plan(plan: RenamePlan) -> int:
    """Write a rename plan to disk.

    Every document is checked before any file is written.

    Returns:
        Number of documents written.

    Raises:
        RenameError: If a document cannot be read or written, or is out of
            date with the plan.
    """
    rewritten: list[tuple[Path, str]] = []
    for edit in plan.edits:
        path = Path(edit.file_path)
        try:
            original = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise RenameError(f"Cannot read {path}: {exc}") from exc
        rewritten.append((path, apply_replacements(original, edit.replacements, plan.old_name)))

    for path, content in rewritten:
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise RenameError(f"Cannot write {path}: {exc}") from exc

    console.print(
        f"[green]Renamed[/green] [bold]{plan.old_name}[/bold] -> [bold]{plan.new_name}[/bold] "
        f"in {len(rewritten)} documents"
    )
    return len(rewritten)
