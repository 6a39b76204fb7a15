"""Typer CLI entry point for plainref.

Bridges the synchronous Typer world to the async indexer via asyncio.run().
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from plainref import __version__
from plainref.config import PlainRefConfig, load_config
from plainref.exceptions import PlainRefError
from plainref.indexer.extractor import ConceptOccurrence
from plainref.navigation import ConceptNavigator
from plainref.references import resolve_reference
from plainref.rename import apply_rename_plan
from plainref.service import ConceptService

app = typer.Typer(
    name="plainref",
    help="plainref — concept navigation for .plain documents.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

RootsOption = Annotated[
    list[Path] | None,
    typer.Option("--root", "-r", help="Directory to index (repeatable). Defaults to config or cwd."),
]


def _error_exit(message: str, hint: str | None = None) -> None:
    """Print a styled error and exit."""
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")
    raise typer.Exit(code=1)


def _config(roots: list[Path] | None) -> PlainRefConfig:
    config = load_config(Path.cwd())
    if roots:
        config.roots = roots
    return config


def _indexed_service(roots: list[Path] | None) -> ConceptService:
    """Build a service and run the initial index."""
    service = ConceptService(_config(roots))
    asyncio.run(service.initialize())
    return service


def _occurrence_table(title: str, occurrences: list[ConceptOccurrence]) -> Table:
    table = Table(title=title, border_style="cyan", header_style="bold cyan")
    table.add_column("Document")
    table.add_column("Line", justify="right")
    table.add_column("Col", justify="right")
    table.add_column("Section", style="dim")
    for o in occurrences:
        table.add_row(o.file_path, str(o.line + 1), str(o.character + 1), o.section or "")
    return table


@app.command()
def index(roots: RootsOption = None) -> None:
    """Index all documents and show a summary."""
    try:
        service = _indexed_service(roots)
    except PlainRefError as exc:
        _error_exit(str(exc))
        return

    idx = service.index
    table = Table(
        title=f"plainref v{__version__}", border_style="cyan", header_style="bold cyan"
    )
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Documents", str(len(idx.documents())))
    table.add_row("Defined concepts", str(len(idx.defined_names())))
    table.add_row("Referenced concepts", str(len(idx.concept_names())))
    table.add_row("Unreadable documents", str(len(idx.errors)))

    console.print()
    console.print(table)
    for path, error in idx.errors.items():
        console.print(f"[yellow]Unreadable[/yellow] {escape(path)}: {escape(error)}")
    console.print()


@app.command()
def find(
    name: Annotated[str, typer.Argument(help="Concept name, without colons")],
    roots: RootsOption = None,
) -> None:
    """Show where a concept is defined and used."""
    try:
        service = _indexed_service(roots)
    except PlainRefError as exc:
        _error_exit(str(exc))
        return

    definitions = service.find_concept_definition(name)
    usages = service.find_concept_usage(name)
    if not definitions and not usages:
        _error_exit(f"No concept found with name '{name}'")
        return

    console.print(_occurrence_table(f"Definitions of {name}", definitions))
    console.print(_occurrence_table(f"Usages of {name}", usages))


@app.command()
def lookup(
    document: Annotated[Path, typer.Argument(help="Document containing the cursor")],
    line: Annotated[int, typer.Argument(help="1-based line")],
    column: Annotated[int, typer.Argument(help="1-based column")],
    roots: RootsOption = None,
) -> None:
    """Show what the word at a position refers to."""
    try:
        text = document.read_text(encoding="utf-8")
    except OSError as exc:
        _error_exit(f"Cannot read {document}: {exc}")
        return

    try:
        service = _indexed_service(roots)
    except PlainRefError as exc:
        _error_exit(str(exc))
        return

    lines = text.split("\n")
    navigator = ConceptNavigator.for_service(service)
    hover = navigator.hover(lines, line - 1, column - 1)
    if hover is not None:
        label = "Used in" if hover.is_definition else "Defined in"
        console.print(
            f"[bold]{'Defined' if hover.is_definition else 'Used'} concept:[/bold] "
            f"[cyan]{hover.concept}[/cyan]"
        )
        for path, sections in hover.groups.items():
            console.print(f"[italic]{label}: {Path(path).stem}[/italic]")
            for section, occurrences in sections.items():
                if hover.is_definition:
                    console.print(f"[dim]***{escape(section)}***[/dim]")
                for occurrence in occurrences:
                    console.print(Syntax(occurrence.content, "text", word_wrap=True))

    targets = navigator.definition_targets(document.resolve(), lines, line - 1, column - 1)
    if not targets:
        if hover is None:
            _error_exit("Nothing found at this position")
        return
    for target in targets:
        console.print(f"-> {escape(target.file_path)}:{target.line + 1}:{target.character + 1}")


@app.command()
def rename(
    old_name: Annotated[str, typer.Argument(help="Current concept name")],
    new_name: Annotated[str, typer.Argument(help="New concept name")],
    roots: RootsOption = None,
    apply: Annotated[bool, typer.Option("--apply", help="Write the changes to disk")] = False,
) -> None:
    """Plan (and optionally apply) renaming a concept everywhere it is used."""
    try:
        service = _indexed_service(roots)
        plan = service.plan_rename(old_name, new_name)
    except PlainRefError as exc:
        _error_exit(str(exc))
        return

    table = Table(
        title=f"Rename {old_name} -> {new_name}", border_style="cyan", header_style="bold cyan"
    )
    table.add_column("Document")
    table.add_column("Line", justify="right")
    table.add_column("Range")
    for edit in plan.edits:
        for rep in edit.replacements:
            table.add_row(edit.file_path, str(rep.line + 1), f"{rep.start}-{rep.end}")
    console.print(table)

    if not apply:
        console.print("[dim]Dry run. Pass --apply to write the changes.[/dim]")
        return

    try:
        written = apply_rename_plan(plan)
    except PlainRefError as exc:
        _error_exit(str(exc))
        return
    console.print(f"[green]Updated {written} documents.[/green]")


@app.command()
def resolve(
    document: Annotated[Path, typer.Argument(help="Referencing document")],
    identifier: Annotated[str, typer.Argument(help="Name listed under import: or requires:")],
) -> None:
    """Resolve a front-matter import reference to a document path."""
    try:
        config = _config(None)
    except PlainRefError as exc:
        _error_exit(str(exc))
        return

    target = resolve_reference(
        document.resolve(), identifier, config.extension, config.search_paths, debug=config.debug
    )
    if target is None:
        _error_exit(
            f"No {config.extension} document named '{identifier}'",
            hint=f"Searched next to {document} and in: {', '.join(config.search_paths)}",
        )
        return
    console.print(str(target))


@app.command()
def status() -> None:
    """Show the resolved configuration."""
    try:
        config = _config(None)
    except PlainRefError as exc:
        _error_exit(str(exc))
        return

    table = Table(title="plainref configuration", border_style="cyan", header_style="bold cyan")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Project", str(config.project_dir))
    table.add_row("Roots", ", ".join(str(r) for r in config.resolved_roots()))
    table.add_row("Extension", config.extension)
    table.add_row("Ignored dirs", ", ".join(config.ignore_dirs))
    table.add_row("Ignored prefix", config.ignore_prefix or "[dim]none[/dim]")
    table.add_row("Search paths", ", ".join(config.search_paths))
    table.add_row("Debounce", f"{config.debounce_delay}s")
    table.add_row("Debug", "[green]on[/green]" if config.debug else "off")

    console.print()
    console.print(Panel(table, border_style="cyan"))
    console.print()
