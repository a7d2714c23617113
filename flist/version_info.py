from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from flist.pe import _err, _u16, _u32, _u64, find_version_resource, parse_pe_layout, ResourceSpan
from flist.version import Version

VS_VERSION_INFO_KEY = "VS_VERSION_INFO"
VS_FFI_SIGNATURE = 0xFEEF04BD
VS_FIXEDFILEINFO_SIZE = 52

# Offsets inside VS_FIXEDFILEINFO
FFI_SIGNATURE = 0x00
FFI_FILE_VERSION = 0x08  # dwFileVersionMS, dwFileVersionLS


@dataclass(frozen=True)
class VersionExtraction:
    version: Optional[Version]
    errors: List[Dict[str, Any]]


def _align4(x: int) -> int:
    return (x + 3) & ~3


def _read_utf16le_zstring(data: bytes, off: int, end: int, *, max_chars: int = 64) -> Tuple[Optional[str], int]:
    """
    Read UTF-16LE null-terminated string starting at off, not past end.
    Returns (string_without_null, bytes_consumed_including_null).
    """
    if off < 0 or off >= end:
        return None, 0
    stop = min(end, off + max_chars * 2)
    i = off
    while i + 1 < stop:
        if data[i] == 0 and data[i + 1] == 0:
            return data[off:i].decode("utf-16le", errors="replace"), (i + 2) - off
        i += 2
    return None, 0


def decode_file_version(bits: int) -> Version:
    """
    Split the 64-bit file version read from VS_FIXEDFILEINFO.

    Little-endian read of dwFileVersionMS followed by dwFileVersionLS:
    bits 0-15 minor, 16-31 major, 32-47 private, 48-63 build.
    """
    minor = bits & 0xFFFF
    major = (bits >> 16) & 0xFFFF
    private = (bits >> 32) & 0xFFFF
    build = (bits >> 48) & 0xFFFF
    return Version(major=major, minor=minor, build=build, private=private)


def decode_fixed_file_info(data: bytes, span: ResourceSpan) -> Tuple[Optional[Version], List[Dict[str, Any]]]:
    """Decode the file version from the VS_VERSIONINFO blob at span."""
    start = span.offset
    end = min(len(data), span.offset + span.size)

    if start < 0 or start + 6 > end:
        return None, [_err("E_PE_VI_TRUNCATED", "VS_VERSIONINFO header truncated.", vs_off=start)]

    wlen = _u16(data, start) or 0
    wvlen = _u16(data, start + 2) or 0
    if wlen < 6:
        return None, [_err("E_PE_VI_BAD_LENGTH", "VS_VERSIONINFO length too small.", w_length=wlen)]
    block_end = min(end, start + wlen)

    key, consumed = _read_utf16le_zstring(data, start + 6, block_end)
    if key is None:
        return None, [_err("E_PE_VI_PARSE_FAILED", "Failed to parse VS_VERSIONINFO root key.")]
    if key != VS_VERSION_INFO_KEY:
        return None, [_err("E_PE_VI_BAD_ROOT", "Root key is not VS_VERSION_INFO.", root_key=key)]

    if wvlen == 0:
        return None, [_err("E_PE_VI_NO_FIXED_INFO", "VS_VERSIONINFO carries no VS_FIXEDFILEINFO.")]

    # Value alignment is relative to the start of the resource blob.
    val_off = start + _align4(6 + consumed)
    if wvlen < VS_FIXEDFILEINFO_SIZE or val_off + VS_FIXEDFILEINFO_SIZE > block_end:
        return None, [_err("E_PE_VI_FIXED_INFO_TRUNCATED", "VS_FIXEDFILEINFO truncated.", value_length=wvlen, val_off=val_off)]

    signature = _u32(data, val_off + FFI_SIGNATURE)
    if signature != VS_FFI_SIGNATURE:
        return None, [_err("E_PE_VI_BAD_FIXED_SIGNATURE", "VS_FIXEDFILEINFO signature mismatch.", signature=signature)]

    bits = _u64(data, val_off + FFI_FILE_VERSION)
    if bits is None:
        return None, [_err("E_PE_VI_FIXED_INFO_TRUNCATED", "VS_FIXEDFILEINFO truncated.", val_off=val_off)]
    return decode_file_version(bits), []


def extract_version(
    data: bytes,
    *,
    max_sections: int = 96,
    max_vs_size: int = 2_000_000,
) -> VersionExtraction:
    """
    Run the full bytes -> PE header -> resource tree -> VS_FIXEDFILEINFO chain.
    Malformed input yields version=None with the reasons in errors.
    """
    pe_res = parse_pe_layout(data, max_sections=max_sections)
    errors: List[Dict[str, Any]] = list(pe_res.errors)
    if not pe_res.present or pe_res.layout is None:
        return VersionExtraction(version=None, errors=errors)

    span, rsrc_errs = find_version_resource(data, pe_res.layout, max_vs_size=max_vs_size)
    errors.extend(rsrc_errs)
    if span is None:
        return VersionExtraction(version=None, errors=errors)

    version, vi_errs = decode_fixed_file_info(data, span)
    errors.extend(vi_errs)
    return VersionExtraction(version=version, errors=errors)


def version_from_bytes(data: bytes) -> Optional[Version]:
    return extract_version(data).version
