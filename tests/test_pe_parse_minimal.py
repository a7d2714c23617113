from __future__ import annotations

import struct

from flist.pe import Section, parse_pe_layout, rva_to_offset
from pe_builders import RSRC_RAW_PTR, RSRC_RVA, RSRC_SIZE, build_pe

OPT_OFF = 0x80 + 4 + 20


def test_parse_pe32_layout():
    res = parse_pe_layout(build_pe())
    assert res.present is True
    assert res.layout is not None
    assert res.layout.is_pe32_plus is False
    assert res.layout.resource_rva == RSRC_RVA
    assert res.layout.resource_size == RSRC_SIZE
    assert res.layout.sections == (
        Section(virtual_address=RSRC_RVA, virtual_size=RSRC_SIZE, raw_ptr=RSRC_RAW_PTR, raw_size=RSRC_SIZE),
    )
    assert res.errors == []


def test_parse_pe32_plus_layout():
    res = parse_pe_layout(build_pe(pe32_plus=True))
    assert res.present is True
    assert res.layout is not None
    assert res.layout.is_pe32_plus is True
    assert res.layout.resource_rva == RSRC_RVA


def test_parse_non_pe_bytes_not_present():
    res = parse_pe_layout(b"hello world")
    assert res.present is False
    assert res.layout is None
    assert res.errors == []


def test_elf_header_not_present():
    res = parse_pe_layout(b"\x7fELF\x02\x01\x01" + b"\x00" * 120)
    assert res.present is False
    assert res.errors == []


def test_e_lfanew_out_of_bounds():
    dos = bytearray(b"MZ" + b"\x00" * 58) + struct.pack("<I", 0x10000)
    res = parse_pe_layout(bytes(dos))
    assert res.present is False
    assert [e["code"] for e in res.errors] == ["E_PE_E_LFANEW_OOB"]


def test_missing_nt_signature():
    data = bytearray(build_pe())
    data[0x80:0x84] = b"NE\x00\x00"
    res = parse_pe_layout(bytes(data))
    assert res.present is False
    assert res.errors[0]["code"] == "E_PE_BAD_NT_SIGNATURE"


def test_unknown_optional_header_magic():
    data = bytearray(build_pe())
    struct.pack_into("<H", data, OPT_OFF, 0x107)  # ROM image
    res = parse_pe_layout(bytes(data))
    assert res.present is False
    assert res.layout is None
    assert res.errors[0]["code"] == "E_PE_OPT_BAD_MAGIC"


def test_too_few_data_directories_means_no_resources():
    data = bytearray(build_pe())
    struct.pack_into("<I", data, OPT_OFF + 0x5C, 2)  # NumberOfRvaAndSizes
    res = parse_pe_layout(bytes(data))
    assert res.present is True
    assert res.layout is not None
    assert res.layout.resource_rva == 0


def test_section_count_clamped():
    data = bytearray(build_pe())
    struct.pack_into("<H", data, 0x80 + 4 + 2, 500)
    res = parse_pe_layout(bytes(data), max_sections=4)
    assert res.present is True
    assert any(e["code"] == "E_PE_SECTION_COUNT_CLAMPED" for e in res.errors)
    assert len(res.layout.sections) == 4


def test_rva_to_offset_uses_section_base():
    layout = parse_pe_layout(build_pe()).layout
    assert rva_to_offset(RSRC_RVA + 0x10, sections=layout.sections, file_len=0x800) == RSRC_RAW_PTR + 0x10
    assert rva_to_offset(0x9000, sections=layout.sections, file_len=0x800) is None
    assert rva_to_offset(0, sections=layout.sections, file_len=0x800) is None
    # mapped offset past the end of the image
    assert rva_to_offset(RSRC_RVA + 0x500, sections=layout.sections, file_len=0x300) is None
