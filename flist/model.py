from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def utc_now_iso() -> str:
    """
    UTC timestamp in ISO-8601 with 'Z' suffix, seconds precision.
    Example: 2026-01-08T17:12:34Z
    """
    return (
        datetime.now(timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


class ListingEntry(BaseModel):
    path: str
    version: Optional[str] = None


class Listing(BaseModel):
    timestamp_utc: str = Field(default_factory=utc_now_iso)
    directory: str
    pattern: str
    include_file_version: bool = False
    min_version: Optional[str] = None
    max_version: Optional[str] = None
    config_snapshot: Dict[str, Any] = Field(default_factory=dict)

    file_count: int = 0
    files: List[ListingEntry] = Field(default_factory=list)
