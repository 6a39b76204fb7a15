"""Document discovery: walks root directories for files with the document extension."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from rich.console import Console

from plainref.config import DEFAULT_EXTENSION, DEFAULT_IGNORE_DIRS
from plainref.exceptions import IndexerError

console = Console(stderr=True)


class DocumentScanner:
    """Discovers documents below a set of root directories.

    Usage::

        scanner = DocumentScanner([Path("/my/specs")])
        paths = scanner.scan()
    """

    def __init__(
        self,
        roots: Iterable[Path],
        extension: str = DEFAULT_EXTENSION,
        ignore_dirs: Iterable[str] = DEFAULT_IGNORE_DIRS,
        ignore_prefix: str = ".",
    ) -> None:
        """Initialize the scanner.

        Args:
            roots: Directories to walk.
            extension: File extension (with leading dot) a document must have.
            ignore_dirs: Directory names skipped on exact match.
            ignore_prefix: Directory names starting with this marker are skipped.
                An empty string disables the prefix rule.
        """
        self._roots = [Path(r).resolve() for r in roots]
        self._extension = extension
        self._ignore_dirs = frozenset(ignore_dirs)
        self._ignore_prefix = ignore_prefix

    @property
    def extension(self) -> str:
        return self._extension

    def matches(self, path: Path | str) -> bool:
        """Return True if path carries the document extension."""
        return str(path).endswith(self._extension)

    def scan(self) -> list[Path]:
        """Walk every root and return discovered documents.

        Returns:
            Resolved document paths, sorted. A document reachable through
            several links is listed once.

        Raises:
            IndexerError: If a root is missing or cannot be listed.
        """
        found: set[Path] = set()
        for root in self._roots:
            if not root.is_dir():
                raise IndexerError(f"Root directory does not exist: {root}")
            found.update(self._scan_root(root))

        results = sorted(found)
        console.print(f"[green]Scanner[/green] found [bold]{len(results)}[/bold] documents")
        return results

    def _scan_root(self, root: Path) -> list[Path]:
        found: list[Path] = []
        try:
            for dirpath_str, dirnames, filenames in os.walk(root, topdown=True):
                dirpath = Path(dirpath_str)
                dirnames[:] = sorted(d for d in dirnames if not self._should_skip_dir(d))

                for fname in filenames:
                    full = dirpath / fname
                    if self.matches(fname) and full.is_file():
                        found.append(full.resolve())
        except OSError as exc:
            raise IndexerError(f"Failed to scan {root}: {exc}") from exc
        return found

    def _should_skip_dir(self, dirname: str) -> bool:
        """Return True if dirname should never be descended into."""
        if dirname in self._ignore_dirs:
            return True
        if self._ignore_prefix and dirname.startswith(self._ignore_prefix):
            return True
        return False
