from __future__ import annotations
from rich.console import Console
from pathlib import Path
from typing import List

from flist.scanner import FileInfo

console = Console()


def format_row(fi: FileInfo, include_version: bool) -> str:
    if not include_version:
        return str(fi.path)
    version = str(fi.version) if fi.version is not None else ""
    return f"{version:<15} {fi.path}"


def _plain(line: str = "") -> None:
    console.print(line, markup=False, highlight=False, emoji=False, soft_wrap=True)


def render_header(directory: Path) -> None:
    _plain(f'List files in "{directory}" and its subdirectories.')
    _plain('Use "flist --help" to print help.')
    _plain()


def render_console(files: List[FileInfo], include_version: bool, quiet: bool) -> None:
    if not quiet:
        console.print(f"[bold]Found {len(files)} files.[/bold]")
        _plain()

    for fi in files:
        _plain(format_row(fi, include_version))

    if not quiet:
        _plain()
        console.print(f"[bold]Found {len(files)} files.[/bold]")
