"""Front-matter import references.

A document may start with a ``---`` delimited front matter block whose
``import:`` and ``requires:`` keys list other documents by bare name::

    ---
    import:
      - base_rules
    ---

A name resolves to ``<name><extension>`` next to the document, or inside one
of the configured search folders below it.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from pathlib import Path

from rich.console import Console

console = Console(stderr=True)

_FRONTMATTER_FENCE = "---"
_KEY_RE = re.compile(r"^(import|requires|description|required_concepts|exported_concepts):")
_REFERENCE_KEYS = frozenset({"import", "requires"})
_IDENTIFIER_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")


def is_in_frontmatter(lines: Sequence[str], line: int) -> bool:
    """Return True if line lies between the opening and closing ``---`` fences."""
    opening: int | None = None
    for index, text in enumerate(lines):
        if text.strip() != _FRONTMATTER_FENCE:
            continue
        if opening is None:
            if index >= line:
                return False
            opening = index
        else:
            return opening < line < index
    return False


def reference_key_at(lines: Sequence[str], line: int) -> str | None:
    """Return the front-matter key governing line, scanning upward to the fence."""
    for index in range(min(line, len(lines) - 1), -1, -1):
        text = lines[index].strip()
        if text == _FRONTMATTER_FENCE:
            return None
        match = _KEY_RE.match(text)
        if match:
            return match.group(1)
    return None


def is_import_reference(lines: Sequence[str], line: int, word: str) -> bool:
    """Return True if word at line is a document reference under import/requires."""
    if _IDENTIFIER_RE.fullmatch(word) is None:
        return False
    if not is_in_frontmatter(lines, line):
        return False
    return reference_key_at(lines, line) in _REFERENCE_KEYS


def resolve_reference(
    document: Path,
    identifier: str,
    extension: str,
    search_paths: Iterable[str] = (),
    debug: bool = False,
) -> Path | None:
    """Locate the document an identifier refers to.

    Args:
        document: The referencing document.
        identifier: Bare document name.
        extension: Document extension, including the dot.
        search_paths: Folder names below the document's directory to try after it.
        debug: Print every candidate path.

    Returns:
        The first existing candidate, or None.
    """
    base = document.parent
    file_name = identifier + extension
    candidates = [base / file_name] + [base / folder / file_name for folder in search_paths]
    for candidate in candidates:
        if debug:
            console.print(f"[dim]Checking {candidate}[/dim]")
        if candidate.is_file():
            return candidate
    return None
