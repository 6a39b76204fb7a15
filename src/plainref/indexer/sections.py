"""Section structure of plain documents.

A section header is a line whose trimmed form is ``***name***`` with no
``*`` inside the name. Sections do not nest: every header fully replaces
the previous section context.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

DEFINITIONS_SECTION = "definitions"

_HEADER_RE = re.compile(r"^\*\*\*[^*]+\*\*\*$")
_DEFINITION_LINE_RE = re.compile(r"^-\s(:[^:]+:)(?:,\s*:[^:]+:)*")
_DEFINITION_CANDIDATE_RE = re.compile(r":[^:]+:")

CONCEPT_NAME_RE = re.compile(r"[+\-.0-9A-Z_a-z]+")
CONCEPT_TOKEN_RE = re.compile(r":[+\-.0-9A-Z_a-z]+:")
_VALID_TOKEN_RE = re.compile(r":[+\-.0-9A-Z_a-z]+:")


@dataclass(frozen=True, slots=True)
class SectionTag:
    """Section membership of a single line.

    Attributes:
        line_index: Zero-based line number.
        section: Name of the enclosing section, or "" before the first header.
        is_header: True if this line is itself a section header.
    """

    line_index: int
    section: str
    is_header: bool


def header_name(line: str) -> str | None:
    """Return the section name if line is a header, else None."""
    trimmed = line.strip()
    if not _HEADER_RE.match(trimmed):
        return None
    return trimmed.replace("*", "").lower().strip()


def tag_sections(lines: Sequence[str]) -> Iterator[SectionTag]:
    """Yield one SectionTag per line, in order.

    A header line is tagged with the section it opens.
    """
    current = ""
    for index, line in enumerate(lines):
        name = header_name(line)
        if name is not None:
            current = name
        yield SectionTag(line_index=index, section=current, is_header=name is not None)


def section_at(lines: Sequence[str], line_index: int) -> str:
    """Return the section enclosing line_index.

    Walks backward from line_index (inclusive) to the nearest header.

    Args:
        lines: Document lines.
        line_index: Zero-based target line.

    Returns:
        The section name, or "" if no header precedes the line.
    """
    for index in range(min(line_index, len(lines) - 1), -1, -1):
        name = header_name(lines[index])
        if name is not None:
            return name
    return ""


def definition_tokens(line: str) -> list[tuple[str, int]]:
    """Parse a definitions list item.

    Args:
        line: A raw document line.

    Returns:
        ``(name, column)`` pairs in line order, where column is the offset of
        the token's opening colon in the raw line. Tokens outside the concept
        alphabet are dropped. Empty if the line is not a definition line.
    """
    match = _DEFINITION_LINE_RE.match(line.strip())
    if match is None:
        return []

    indent = len(line) - len(line.lstrip())
    tokens: list[tuple[str, int]] = []
    for candidate in _DEFINITION_CANDIDATE_RE.finditer(match.group(0)):
        token = candidate.group(0)
        if _VALID_TOKEN_RE.fullmatch(token):
            tokens.append((token[1:-1], indent + candidate.start()))
    return tokens


def is_valid_concept_name(name: str) -> bool:
    return CONCEPT_NAME_RE.fullmatch(name) is not None
