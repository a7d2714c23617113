from __future__ import annotations

import csv
from pathlib import Path
from typing import List

from flist.scanner import FileInfo


def write_listing_csv(path: Path, files: List[FileInfo], include_version: bool) -> None:
    fieldnames = ["path", "version"] if include_version else ["path"]

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for fi in files:
            row = {"path": str(fi.path)}
            if include_version:
                row["version"] = str(fi.version) if fi.version is not None else ""
            writer.writerow(row)
