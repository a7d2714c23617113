from __future__ import annotations

import fnmatch
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from flist.version import Version
from flist.version_info import extract_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanLimits:
    max_file_bytes: int = 512 * 1024 * 1024

    # PE parsing bounds
    pe_max_sections: int = 96
    max_version_resource_bytes: int = 2_000_000


@dataclass(frozen=True)
class FileInfo:
    path: Path
    version: Optional[Version] = None


def read_file_bytes(path: Path, *, max_bytes: int) -> tuple[bytes, bool]:
    with path.open("rb") as f:
        data = f.read(max_bytes + 1)
    if len(data) > max_bytes:
        return data[:max_bytes], True
    return data, False


def read_file_version(path: Path, *, limits: ScanLimits = ScanLimits()) -> Optional[Version]:
    """
    Best-effort version lookup for one file.

    Unreadable files, files over the size limit and anything that is not a PE
    image with a VS_FIXEDFILEINFO block all give None.
    """
    try:
        data, truncated = read_file_bytes(path, max_bytes=limits.max_file_bytes)
    except OSError as e:
        logger.debug("%s: unreadable (%s: %s)", path, type(e).__name__, e)
        return None

    if truncated:
        logger.debug("%s: larger than max_file_bytes=%d, version skipped", path, limits.max_file_bytes)
        return None

    res = extract_version(
        data,
        max_sections=limits.pe_max_sections,
        max_vs_size=limits.max_version_resource_bytes,
    )
    if res.errors:
        logger.debug("%s: %s", path, ", ".join(e["code"] for e in res.errors))
    return res.version


def enumerate_files(directory: Path, pattern: str) -> List[Path]:
    """Recursively list regular files under directory whose name matches the glob."""
    files: List[Path] = []
    for p in directory.rglob("*"):
        try:
            if not p.is_file():
                continue
        except OSError:
            continue
        if fnmatch.fnmatch(p.name, pattern):
            files.append(p)
    return files


def collect_file_info(
    files: Iterable[Path],
    *,
    include_version: bool,
    limits: ScanLimits = ScanLimits(),
    workers: int = 1,
) -> List[FileInfo]:
    paths = list(files)
    if not include_version:
        return [FileInfo(path=p) for p in paths]

    if workers <= 1 or len(paths) <= 1:
        versions = [read_file_version(p, limits=limits) for p in paths]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            versions = list(executor.map(lambda p: read_file_version(p, limits=limits), paths))

    return [FileInfo(path=p, version=v) for p, v in zip(paths, versions)]


def filter_by_version(
    files: Iterable[FileInfo],
    min_version: Optional[Version] = None,
    max_version: Optional[Version] = None,
) -> List[FileInfo]:
    """Keep files whose version lies in [min_version, max_version]; versionless files are dropped."""
    out: List[FileInfo] = []
    for fi in files:
        if fi.version is None:
            continue
        if min_version is not None and not fi.version >= min_version:
            continue
        if max_version is not None and not fi.version <= max_version:
            continue
        out.append(fi)
    return out


def sort_by_path(files: Iterable[FileInfo]) -> List[FileInfo]:
    return sorted(files, key=lambda fi: fi.path)
