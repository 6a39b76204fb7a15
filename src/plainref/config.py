"""Configuration management for plainref.

Settings are loaded from three sources in order of priority:
1. Environment variables (highest priority)
2. Project-level config: .plainref/config.toml
3. Global config: ~/.config/plainref/config.toml (lowest priority)
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from rich.console import Console

from plainref.exceptions import ConfigError

console = Console(stderr=True)

_GLOBAL_CONFIG_DIR = Path.home() / ".config" / "plainref"
_GLOBAL_CONFIG_PATH = _GLOBAL_CONFIG_DIR / "config.toml"

DEFAULT_EXTENSION = ".plain"
DEFAULT_IGNORE_DIRS: tuple[str, ...] = ("node_modules", ".git", "dist", "build", "out", ".vscode")
DEFAULT_SEARCH_PATHS: tuple[str, ...] = ("template", "templates", "imports")


@dataclass
class PlainRefConfig:
    """plainref configuration.

    Attributes:
        project_dir: Directory the project config is read from.
        roots: Root directories scanned for documents. Empty means project_dir.
        extension: Document file extension, including the dot.
        ignore_dirs: Directory names never descended into.
        ignore_prefix: Directories whose name starts with this are skipped too.
        search_paths: Sub-folders searched when resolving import references.
        debounce_delay: Quiet period in seconds before a change is reindexed.
        debug: Emit per-line extraction and lookup traces.
    """

    project_dir: Path = field(default_factory=Path.cwd)
    roots: list[Path] = field(default_factory=list)
    extension: str = DEFAULT_EXTENSION
    ignore_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_DIRS))
    ignore_prefix: str = "."
    search_paths: list[str] = field(default_factory=lambda: list(DEFAULT_SEARCH_PATHS))
    debounce_delay: float = 0.5
    debug: bool = False

    def resolved_roots(self) -> list[Path]:
        """Absolute root directories, falling back to project_dir."""
        roots = self.roots or [self.project_dir]
        return [(r if r.is_absolute() else self.project_dir / r).resolve() for r in roots]


def load_config(project_dir: Path) -> PlainRefConfig:
    """Load configuration from env vars, project config, and global config.

    Priority: env vars > .plainref/config.toml > ~/.config/plainref/config.toml

    Args:
        project_dir: Root directory of the project.

    Returns:
        A fully resolved PlainRefConfig instance.

    Raises:
        ConfigError: If a setting has a value of the wrong type.
    """
    config = PlainRefConfig(project_dir=project_dir)

    # Layer 1: Global config (lowest priority)
    _apply_toml(config, _load_toml(_GLOBAL_CONFIG_PATH))

    # Layer 2: Project config
    _apply_toml(config, _load_toml(project_dir / ".plainref" / "config.toml"))

    # Layer 3: Environment variables (highest priority)
    _apply_env(config)

    return config


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file, returning an empty dict if missing or invalid."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError) as exc:
        console.print(f"[yellow]Warning:[/yellow] Could not parse {path}: {exc}")
        return {}


def _apply_toml(config: PlainRefConfig, settings: dict[str, Any]) -> None:
    """Merge TOML settings into a PlainRefConfig."""
    if "roots" in settings:
        config.roots = [Path(str(r)) for r in _as_list(settings["roots"], "roots")]
    if "extension" in settings:
        config.extension = _normalize_extension(str(settings["extension"]))
    if "ignore_dirs" in settings:
        config.ignore_dirs = [str(d) for d in _as_list(settings["ignore_dirs"], "ignore_dirs")]
    if "ignore_prefix" in settings:
        config.ignore_prefix = str(settings["ignore_prefix"])
    if "search_paths" in settings:
        config.search_paths = [str(p) for p in _as_list(settings["search_paths"], "search_paths")]
    if "debounce_delay" in settings:
        config.debounce_delay = _as_delay(settings["debounce_delay"])
    if "debug" in settings:
        config.debug = bool(settings["debug"])


def _apply_env(config: PlainRefConfig) -> None:
    """Override config with environment variables where set."""
    if extension := os.environ.get("PLAINREF_EXTENSION"):
        config.extension = _normalize_extension(extension)
    if roots := os.environ.get("PLAINREF_ROOTS"):
        config.roots = [Path(r) for r in roots.split(os.pathsep) if r]
    if delay := os.environ.get("PLAINREF_DEBOUNCE"):
        config.debounce_delay = _as_delay(delay)
    if debug := os.environ.get("PLAINREF_DEBUG"):
        config.debug = debug.lower() in ("true", "1", "yes")


def _as_list(value: Any, key: str) -> list[Any]:
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list, got {type(value).__name__}")
    return value


def _as_delay(value: Any) -> float:
    try:
        delay = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid debounce delay: {value!r}") from exc
    if delay < 0:
        raise ConfigError(f"Debounce delay must not be negative: {delay}")
    return delay


def _normalize_extension(extension: str) -> str:
    extension = extension.strip()
    return extension if extension.startswith(".") else f".{extension}"
