"""plainref: concept index and rename planning for .plain documents."""

from __future__ import annotations

__version__ = "0.1.0"
