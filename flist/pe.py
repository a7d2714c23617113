from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

IMAGE_DOS_SIGNATURE = b"MZ"
IMAGE_NT_SIGNATURE = b"PE\x00\x00"

PE32_MAGIC = 0x10B
PE32P_MAGIC = 0x20B

DOS_HEADER_SIZE = 64
COFF_HEADER_SIZE = 20
SECTION_HEADER_SIZE = 40

# Data directory indices
DIR_RESOURCE = 2

# Resource constants
RT_VERSION = 16
RSRC_DIR_SIZE = 16
RSRC_ENTRY_SIZE = 8
RSRC_DATA_ENTRY_SIZE = 16
RSRC_HIGH_BIT = 0x80000000


@dataclass(frozen=True)
class Section:
    virtual_address: int
    virtual_size: int
    raw_ptr: int
    raw_size: int


@dataclass(frozen=True)
class PeLayout:
    is_pe32_plus: bool
    resource_rva: int
    resource_size: int
    sections: Tuple[Section, ...]


@dataclass(frozen=True)
class PeParseResult:
    present: bool
    layout: Optional[PeLayout]
    errors: List[Dict[str, Any]]


@dataclass(frozen=True)
class ResourceSpan:
    offset: int
    size: int


def _err(code: str, message: str, **extra: Any) -> Dict[str, Any]:
    d = {"code": code, "message": message}
    d.update(extra)
    return d


def _u16(data: bytes, off: int) -> Optional[int]:
    if off < 0 or off + 2 > len(data):
        return None
    return struct.unpack_from("<H", data, off)[0]


def _u32(data: bytes, off: int) -> Optional[int]:
    if off < 0 or off + 4 > len(data):
        return None
    return struct.unpack_from("<I", data, off)[0]


def _u64(data: bytes, off: int) -> Optional[int]:
    if off < 0 or off + 8 > len(data):
        return None
    return struct.unpack_from("<Q", data, off)[0]


def _read_bytes(data: bytes, off: int, size: int) -> Optional[bytes]:
    if off < 0 or size < 0 or off + size > len(data):
        return None
    return data[off : off + size]


def _not_pe(*errors: Dict[str, Any]) -> PeParseResult:
    return PeParseResult(present=False, layout=None, errors=list(errors))


def rva_to_offset(rva: int, *, sections: Tuple[Section, ...], file_len: int) -> Optional[int]:
    """Map an RVA to a file offset through the section that loads it."""
    if rva <= 0:
        return None
    for s in sections:
        span = max(s.virtual_size, s.raw_size)
        if span <= 0:
            continue
        if s.virtual_address <= rva < s.virtual_address + span:
            off = s.raw_ptr + (rva - s.virtual_address)
            if 0 <= off < file_len:
                return off
    return None


def _parse_sections(data: bytes, sect_off: int, count: int) -> Tuple[List[Section], List[Dict[str, Any]]]:
    errors: List[Dict[str, Any]] = []
    sections: List[Section] = []
    for i in range(count):
        sh_off = sect_off + i * SECTION_HEADER_SIZE
        if sh_off + SECTION_HEADER_SIZE > len(data):
            errors.append(_err("E_PE_SECTION_HEADER_TRUNCATED", f"Section table ends before header {i}.", section_index=i, sh_off=sh_off))
            break
        sections.append(
            Section(
                virtual_size=_u32(data, sh_off + 8) or 0,
                virtual_address=_u32(data, sh_off + 12) or 0,
                raw_size=_u32(data, sh_off + 16) or 0,
                raw_ptr=_u32(data, sh_off + 20) or 0,
            )
        )
    return sections, errors


def parse_pe_layout(data: bytes, *, max_sections: int = 96) -> PeParseResult:
    """
    Validate the DOS and PE headers and collect what the resource walk needs.

    Returns present=False with layout=None for anything that is not a
    well-formed PE32/PE32+ header. Never raises on malformed input.
    """
    if len(data) < DOS_HEADER_SIZE:
        return _not_pe()

    if data[:2] != IMAGE_DOS_SIGNATURE:
        return _not_pe()

    e_lfanew = _u32(data, 0x3C)
    if e_lfanew is None or e_lfanew >= len(data):
        return _not_pe(_err("E_PE_E_LFANEW_OOB", "e_lfanew is beyond end of file.", e_lfanew=e_lfanew))

    sig = _read_bytes(data, e_lfanew, 4)
    if sig != IMAGE_NT_SIGNATURE:
        return _not_pe(_err("E_PE_BAD_NT_SIGNATURE", "No PE signature at e_lfanew.", e_lfanew=e_lfanew))

    coff_off = e_lfanew + 4
    if coff_off + COFF_HEADER_SIZE > len(data):
        return _not_pe(_err("E_PE_COFF_TRUNCATED", "File ends inside the COFF header.", coff_off=coff_off))

    number_of_sections = _u16(data, coff_off + 2) or 0
    size_of_optional_header = _u16(data, coff_off + 16) or 0

    opt_off = coff_off + COFF_HEADER_SIZE
    opt_magic = _u16(data, opt_off)
    if opt_magic not in (PE32_MAGIC, PE32P_MAGIC):
        return _not_pe(_err("E_PE_OPT_BAD_MAGIC", "Unknown optional header magic.", opt_magic=opt_magic))

    errors: List[Dict[str, Any]] = []
    is_pe32_plus = opt_magic == PE32P_MAGIC

    opt_end = opt_off + size_of_optional_header
    if opt_end > len(data):
        errors.append(
            _err(
                "E_PE_OPT_TRUNCATED",
                "SizeOfOptionalHeader runs past end of file.",
                opt_off=opt_off,
                size_of_optional_header=size_of_optional_header,
            )
        )
        opt_end = len(data)

    # Only the data directory offsets differ between PE32 and PE32+.
    num_rva_off = opt_off + (0x6C if is_pe32_plus else 0x5C)
    dd_off = opt_off + (0x70 if is_pe32_plus else 0x60)
    num_rva_and_sizes = _u32(data, num_rva_off) if num_rva_off + 4 <= opt_end else None

    resource_rva = resource_size = 0
    entry_off = dd_off + DIR_RESOURCE * 8
    if num_rva_and_sizes is not None and num_rva_and_sizes > DIR_RESOURCE and entry_off + 8 <= opt_end:
        resource_rva = _u32(data, entry_off) or 0
        resource_size = _u32(data, entry_off + 4) or 0

    sect_off = opt_off + size_of_optional_header
    if number_of_sections > max_sections:
        errors.append(
            _err(
                "E_PE_SECTION_COUNT_CLAMPED",
                f"Only the first {max_sections} of {number_of_sections} sections are read.",
                number_of_sections=number_of_sections,
                max_sections=max_sections,
            )
        )
        number_of_sections = max_sections

    sections, sect_errs = _parse_sections(data, sect_off, number_of_sections)
    errors.extend(sect_errs)

    layout = PeLayout(
        is_pe32_plus=is_pe32_plus,
        resource_rva=int(resource_rva),
        resource_size=int(resource_size),
        sections=tuple(sections),
    )
    return PeParseResult(present=True, layout=layout, errors=errors)


def find_version_resource(
    data: bytes,
    layout: PeLayout,
    *,
    max_vs_size: int = 2_000_000,
) -> Tuple[Optional[ResourceSpan], List[Dict[str, Any]]]:
    """
    Walk the resource directory to the RT_VERSION (16) data entry.

    Descends type -> name -> language. The type level must match RT_VERSION;
    the first entry is taken at the name and language levels.
    Returns (span, errors); span is None when there is no usable version resource.
    """
    errors: List[Dict[str, Any]] = []

    if not layout.resource_rva or not layout.resource_size:
        return None, errors

    rsrc_off = rva_to_offset(layout.resource_rva, sections=layout.sections, file_len=len(data))
    if rsrc_off is None:
        return None, [
            _err(
                "E_PE_RSRC_RVA_UNMAPPABLE",
                "No section maps the resource directory RVA.",
                resource_rva=layout.resource_rva,
            )
        ]

    rsrc_end = min(len(data), rsrc_off + layout.resource_size)
    if rsrc_end - rsrc_off < RSRC_DIR_SIZE:
        return None, [_err("E_PE_RSRC_TRUNCATED", "Resource section too small for a root directory.", resource_off=rsrc_off)]

    def lookup(dir_rel: int, want_id: Optional[int]) -> Optional[Tuple[int, bool]]:
        # (target_rel, points_to_dir) of the first entry with id want_id, or of the first entry at all
        hdr = rsrc_off + dir_rel
        if hdr + RSRC_DIR_SIZE > rsrc_end:
            errors.append(_err("E_PE_RSRC_DIR_OOB", "Resource directory header lies outside the section.", dir_rel=dir_rel))
            return None
        count = (_u16(data, hdr + 12) or 0) + (_u16(data, hdr + 14) or 0)

        for i in range(count):
            ent = hdr + RSRC_DIR_SIZE + i * RSRC_ENTRY_SIZE
            if ent + RSRC_ENTRY_SIZE > rsrc_end:
                errors.append(_err("E_PE_RSRC_ENTRY_OOB", "Resource entry lies outside the section.", dir_rel=dir_rel, index=i))
                return None
            ident = _u32(data, ent) or 0
            target = _u32(data, ent + 4) or 0
            if want_id is None or (not ident & RSRC_HIGH_BIT and ident == want_id):
                return target & ~RSRC_HIGH_BIT, bool(target & RSRC_HIGH_BIT)
        return None

    # (level, wanted id, target must be a subdirectory)
    levels = (("type", RT_VERSION, True), ("name", None, True), ("language", None, False))
    rel = 0
    for level, want_id, want_dir in levels:
        hit = lookup(rel, want_id)
        if hit is None:
            return None, errors
        rel, is_dir = hit
        if is_dir != want_dir:
            errors.append(
                _err(
                    "E_PE_RSRC_BAD_TREE",
                    f"Resource {level} entry {'should' if want_dir else 'should not'} point to a directory.",
                    level=level,
                    target_rel=rel,
                )
            )
            return None, errors

    entry = rsrc_off + rel
    if entry + RSRC_DATA_ENTRY_SIZE > rsrc_end:
        errors.append(_err("E_PE_RSRC_DATA_ENTRY_OOB", "Resource data entry lies outside the section.", target_rel=rel))
        return None, errors

    blob_rva = _u32(data, entry) or 0
    blob_size = _u32(data, entry + 4) or 0
    if blob_size == 0:
        return None, errors

    if blob_size > max_vs_size:
        errors.append(
            _err(
                "E_PE_RSRC_VS_TOO_LARGE",
                f"Version resource of {blob_size} bytes is over the {max_vs_size} byte limit.",
                data_size=blob_size,
                max_vs_size=max_vs_size,
            )
        )
        return None, errors

    blob_off = rva_to_offset(blob_rva, sections=layout.sections, file_len=len(data))
    if blob_off is None:
        errors.append(_err("E_PE_RSRC_DATA_RVA_UNMAPPABLE", "No section maps the version resource RVA.", data_rva=blob_rva))
        return None, errors

    if blob_off + blob_size > len(data):
        errors.append(_err("E_PE_RSRC_DATA_TRUNCATED", "Version resource runs past end of file.", data_off=blob_off, data_size=blob_size))
        return None, errors

    return ResourceSpan(offset=blob_off, size=blob_size), errors
