"""Concept indexer — document discovery, section parsing, extraction, and the index."""

from __future__ import annotations

from plainref.indexer.extractor import ConceptExtractor, ConceptOccurrence, ExtractionResult
from plainref.indexer.index import ConceptIndex
from plainref.indexer.scanner import DocumentScanner
from plainref.indexer.sections import SectionTag, section_at, tag_sections

__all__ = [
    "ConceptExtractor",
    "ConceptIndex",
    "ConceptOccurrence",
    "DocumentScanner",
    "ExtractionResult",
    "SectionTag",
    "section_at",
    "tag_sections",
]
