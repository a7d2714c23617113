from __future__ import annotations

from pathlib import Path
from typing import List

from flist.reporters.console import format_row
from flist.scanner import FileInfo


def write_listing_text(path: Path, files: List[FileInfo], include_version: bool) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        for fi in files:
            f.write(format_row(fi, include_version) + "\n")
