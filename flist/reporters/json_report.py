from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from flist.model import Listing, ListingEntry
from flist.scanner import FileInfo


def build_listing(files: List[FileInfo], **meta: Any) -> Listing:
    entries = [
        ListingEntry(path=str(fi.path), version=str(fi.version) if fi.version is not None else None)
        for fi in files
    ]
    return Listing(files=entries, file_count=len(entries), **meta)


def write_json(path: Path, obj: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2, ensure_ascii=False), encoding="utf-8")
