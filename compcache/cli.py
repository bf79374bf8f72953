"""Command line interface for compcache."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Sequence

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .config import cache_dir_source, debug_enabled, resolve_cache_dir
from .output import format_size, format_status_icon
from .paths import content_hash, resolve_cache_paths
from .services.cache_service import cache_summary, clear_cache_dir
from .store import CompilationCache
from .text import Messages, Styles
from .transfer import SnapshotError, loads_state

console = Console()

app = typer.Typer(
    help=Messages.APP_HELP,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _styled(text: str, style: str) -> str:
    return f"[{style}]{text}[/{style}]"


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    root = logging.getLogger()
    if any(isinstance(handler, RichHandler) for handler in root.handlers):
        return
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    logging.getLogger("compcache").setLevel(logging.DEBUG)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"compcache v{__version__}")
        raise typer.Exit()


def _absolute(path: str) -> str:
    return os.path.abspath(os.path.expanduser(path))


def _load_snapshot(path: Path) -> CompilationCache:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        console.print(
            _styled(Messages.ERROR_SNAPSHOT_READ.format(path=path, reason=exc), Styles.ERROR)
        )
        raise typer.Exit(code=1)
    cache = CompilationCache()
    try:
        cache.merge(loads_state(text))
    except SnapshotError as exc:
        console.print(
            _styled(Messages.ERROR_SNAPSHOT_INVALID.format(path=path, reason=exc), Styles.ERROR)
        )
        raise typer.Exit(code=1)
    return cache


def expand_affected(cache: CompilationCache, changed: Sequence[str], *, transitive: bool) -> set[str]:
    """Return files affected by *changed*, optionally iterating to a fixpoint."""

    affected: set[str] = set()
    frontier = list(changed)
    while frontier:
        discovered: set[str] = set()
        for path in frontier:
            cache.dependencies.collect_affected(path, discovered)
        new_files = discovered - affected
        affected |= discovered
        if not transitive:
            break
        frontier = sorted(new_files - set(frontier))
    return affected


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help=Messages.HELP_VERBOSE,
    ),
) -> None:
    """Global Typer callback for shared options."""
    _configure_logging(verbose or debug_enabled())


@app.command()
def info() -> None:
    """Show the active cache root and what it holds."""

    root = resolve_cache_dir()
    console.print(_styled(Messages.INFO_TITLE.format(version=__version__), Styles.TITLE))
    console.print(Messages.INFO_ROOT.format(path=root))
    console.print(_styled(Messages.INFO_ROOT_SOURCE.format(source=cache_dir_source()), Styles.INFO))
    summary = cache_summary(root)
    if not summary.exists:
        console.print(_styled(Messages.INFO_ROOT_MISSING, Styles.WARNING))
        return
    console.print(
        Messages.INFO_SUMMARY.format(
            shards=summary.shards,
            code=summary.code_files,
            maps=summary.map_files,
            size=format_size(summary.size_bytes),
        )
    )
    writable = os.access(root, os.W_OK)
    console.print(f"{format_status_icon(writable, console=console)} {Messages.INFO_WRITABLE}")


@app.command()
def path(
    file: str = typer.Argument(..., help=Messages.HELP_PATH_FILE),
    hash_value: str = typer.Argument(..., metavar="HASH", help=Messages.HELP_PATH_HASH),
) -> None:
    """Show where the artifacts for FILE compiled at HASH live."""

    try:
        paths = resolve_cache_paths(_absolute(file), hash_value)
    except ValueError as exc:
        console.print(_styled(Messages.ERROR_HASH_INVALID.format(reason=exc), Styles.ERROR))
        raise typer.Exit(code=1)
    table = Table(show_header=True, header_style=Styles.TABLE_HEADER)
    table.add_column(Messages.TABLE_HEADER_KIND)
    table.add_column(Messages.TABLE_HEADER_PATH, overflow="fold")
    table.add_column(Messages.TABLE_HEADER_EXISTS, justify="center")
    for kind, artifact in (("code", paths.code_path), ("source map", paths.source_map_path)):
        table.add_row(kind, str(artifact), format_status_icon(artifact.exists(), console=console))
    console.print(table)


@app.command("hash")
def hash_command(
    file: Path = typer.Argument(..., help=Messages.HELP_HASH_FILE),
    salt: list[str] = typer.Option([], "--salt", help=Messages.HELP_HASH_SALT),
) -> None:
    """Print the content hash for FILE."""

    try:
        source = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        console.print(_styled(Messages.ERROR_FILE_READ.format(path=file, reason=exc), Styles.ERROR))
        raise typer.Exit(code=1)
    console.print(content_hash(source, *salt), highlight=False)


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help=Messages.HELP_CLEAR_YES),
) -> None:
    """Remove every cached artifact under the cache root."""

    root = resolve_cache_dir()
    if not root.exists():
        console.print(_styled(Messages.INFO_CLEAR_NONE.format(path=root), Styles.INFO))
        return
    if not yes and not typer.confirm(Messages.INFO_CLEAR_CONFIRM.format(path=root)):
        console.print(_styled(Messages.INFO_CLEAR_ABORTED, Styles.WARNING))
        raise typer.Exit(code=1)
    try:
        removed = clear_cache_dir(root)
    except OSError as exc:
        console.print(_styled(Messages.ERROR_CLEAR_FAILED.format(path=root, reason=exc), Styles.ERROR))
        raise typer.Exit(code=1)
    plural = "y" if removed == 1 else "ies"
    console.print(
        _styled(
            Messages.INFO_CLEARED.format(count=removed, plural=plural, path=root),
            Styles.SUCCESS,
        )
    )


@app.command()
def deps(
    snapshot: Path = typer.Argument(..., help=Messages.HELP_SNAPSHOT),
    file: str = typer.Argument(..., help=Messages.HELP_DEPS_FILE),
) -> None:
    """List the recorded dependencies of FILE in a snapshot."""

    cache = _load_snapshot(snapshot)
    target = _absolute(file)
    found = sorted(cache.dependencies_of(target))
    if not found:
        console.print(_styled(Messages.INFO_NO_DEPENDENCIES.format(path=target), Styles.INFO))
        return
    for dep in found:
        console.print(dep, soft_wrap=True, markup=False, highlight=False)


@app.command()
def affected(
    snapshot: Path = typer.Argument(..., help=Messages.HELP_SNAPSHOT),
    files: list[str] = typer.Argument(..., help=Messages.HELP_AFFECTED_FILES),
    transitive: bool = typer.Option(
        False,
        "--transitive",
        help=Messages.HELP_AFFECTED_TRANSITIVE,
    ),
) -> None:
    """List the files that must be recompiled after FILES change."""

    cache = _load_snapshot(snapshot)
    changed = [_absolute(item) for item in files]
    for item in sorted(expand_affected(cache, changed, transitive=transitive)):
        console.print(item, soft_wrap=True, markup=False, highlight=False)


def run(argv: list[str] | None = None) -> None:
    """Entry point wrapper allowing optional argument override."""
    if argv is None:
        app()
    else:
        app(args=list(argv))


if __name__ == "__main__":  # pragma: no cover - manual invocation
    run(sys.argv[1:])
