from __future__ import annotations

import logging
import re
import tomllib
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from .compare import compare_trees, count_changes
from .config import Settings, load_settings, parse_hidden_kinds
from .errors import TreeError
from .render import RenderOptions, header_line
from .scanner import mount, read_tree
from .tree import FileTree, fold_range
from .view import filter_tree

app = typer.Typer(
    help="Read directories into trees, stack them and compare them",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load(config: Path | None) -> Settings:
    try:
        settings = load_settings(config)
    except (OSError, ValueError, tomllib.TOMLDecodeError) as exc:
        err_console.print(f"[red]Invalid configuration:[/red] {exc}")
        raise typer.Exit(1)
    _setup_logging(settings.log_level)
    return settings


def _options(
    settings: Settings, attributes: bool | None, hide: list[str] | None = None
) -> RenderOptions:
    options = settings.render_options()
    hidden = options.hidden_kinds
    if hide:
        try:
            hidden = hidden | parse_hidden_kinds(hide)
        except ValueError as exc:
            err_console.print(f"[red]Invalid --hide value:[/red] {exc}")
            raise typer.Exit(2)
    return RenderOptions(
        show_attributes=options.show_attributes if attributes is None else attributes,
        hidden_kinds=hidden,
    )


def _mount(directory: Path) -> FileTree:
    try:
        return read_tree("/", mount(directory), recursive=True)
    except FileNotFoundError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)


def _set_cursor(tree: FileTree, path: str) -> None:
    try:
        tree.set_cursor(path)
    except TreeError as exc:
        err_console.print(f"[red]Cannot enter {path}:[/red] {exc}")
        raise typer.Exit(1)


def _filtered(
    tree: FileTree, pattern: str | None, options: RenderOptions
) -> FileTree:
    if pattern is None:
        return tree
    try:
        return filter_tree(tree, pattern, options.hidden_kinds)
    except re.error as exc:
        err_console.print(f"[red]Invalid --filter pattern:[/red] {exc}")
        raise typer.Exit(2)


def _print_window(
    tree: FileTree, start: int, stop: int | None, options: RenderOptions
) -> None:
    end = tree.visible_count(options) if stop is None else stop
    if options.show_attributes:
        console.print(Text(header_line(), style="bold"))
    for row in tree.render_window(start, end, options):
        console.print(row.to_text(options.show_attributes))


@app.command("ls")
def list_directory(
    path: Path = typer.Argument(Path("."), help="Directory to list"),
    start: int = typer.Option(0, help="First row of the window"),
    stop: int | None = typer.Option(None, help="Row after the last one (default: all)"),
    attributes: bool | None = typer.Option(
        None,
        "--attributes/--no-attributes",
        help="Show permission, owner and size columns (default: config)",
    ),
    recursive: bool = typer.Option(False, help="Read the whole subtree"),
    config: Path | None = typer.Option(None, help="TOML settings file"),
) -> None:
    """List a directory the way a file panel shows it."""
    settings = _load(config)
    resolved = path.expanduser().resolve()
    if not resolved.exists():
        err_console.print(f"[red]Path not found:[/red] {resolved}")
        raise typer.Exit(1)
    tree = read_tree(resolved.as_posix(), recursive=recursive)
    _print_window(tree, start, stop, _options(settings, attributes))


@app.command()
def diff(
    lower: Path = typer.Argument(..., help="Baseline directory"),
    upper: Path = typer.Argument(..., help="Directory compared against the baseline"),
    cd: str = typer.Option("/", help="Directory (relative to both roots) to list"),
    hide: list[str] | None = typer.Option(
        None, help="Change kind to hide: added, removed, modified or unchanged"
    ),
    pattern: str | None = typer.Option(
        None, "--filter", help="Only show paths matching this regex"
    ),
    start: int = typer.Option(0, help="First row of the window"),
    stop: int | None = typer.Option(None, help="Row after the last one (default: all)"),
    attributes: bool | None = typer.Option(
        None,
        "--attributes/--no-attributes",
        help="Show permission, owner and size columns (default: config)",
    ),
    config: Path | None = typer.Option(None, help="TOML settings file"),
) -> None:
    """Compare two directories by metadata and list the marked result."""
    settings = _load(config)
    options = _options(settings, attributes, hide)
    comparison = compare_trees(_mount(lower), _mount(upper))
    tree = comparison.tree
    _set_cursor(tree, cd)

    counts = count_changes(tree)
    console.print(
        f"Added: {counts.added}  Removed: {counts.removed}  "
        f"Modified: {counts.modified}  Unchanged: {counts.unchanged}"
    )
    for failure in comparison.failed:
        err_console.print(f"[yellow]Skipped[/yellow] {failure}")
    _print_window(_filtered(tree, pattern, options), start, stop, options)


@app.command()
def stack(
    directories: list[Path] = typer.Argument(..., help="Directories, lowest first"),
    cd: str = typer.Option("/", help="Directory of the stacked tree to list"),
    pattern: str | None = typer.Option(
        None, "--filter", help="Only show paths matching this regex"
    ),
    attributes: bool | None = typer.Option(
        None,
        "--attributes/--no-attributes",
        help="Show permission, owner and size columns (default: config)",
    ),
    config: Path | None = typer.Option(None, help="TOML settings file"),
) -> None:
    """Overlay directories on top of each other, later ones winning."""
    settings = _load(config)
    trees = [_mount(directory) for directory in directories]
    try:
        tree, failed = fold_range(trees, 0, len(trees) - 1)
    except TreeError as exc:
        err_console.print(f"[red]Cannot stack:[/red] {exc}")
        raise typer.Exit(1)
    _set_cursor(tree, cd)
    for failure in failed:
        err_console.print(f"[yellow]Skipped[/yellow] {failure}")
    options = _options(settings, attributes)
    _print_window(_filtered(tree, pattern, options), 0, None, options)


if __name__ == "__main__":
    app()
