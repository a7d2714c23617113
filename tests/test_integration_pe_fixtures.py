from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from flist.cli import app
from flist.pe import parse_pe_layout
from flist.scanner import read_file_version
from flist.version import Version
from flist.version_info import extract_version

FIXTURES = Path(__file__).parent / "fixtures"

runner = CliRunner()


@pytest.mark.parametrize(
    "name, pe32_plus",
    [("launcher-w32.exe", False), ("launcher-w64.exe", True)],
)
def test_real_launcher_file_version(name: str, pe32_plus: bool):
    fixture = FIXTURES / name
    assert fixture.exists(), f"Missing fixture {fixture}"
    data = fixture.read_bytes()

    layout = parse_pe_layout(data)
    assert layout.present is True
    assert layout.layout.is_pe32_plus is pe32_plus

    res = extract_version(data)
    assert res.errors == []
    assert res.version == Version(1, 1, 0, 14)
    assert read_file_version(fixture) == Version(1, 1, 0, 14)


def test_cli_lists_real_launchers():
    result = runner.invoke(app, ["launcher-*.exe", "-d", str(FIXTURES), "-i", "-s", "-q"])
    assert result.exit_code == 0, result.output
    lines = [ln for ln in result.output.splitlines() if ln.strip()]
    assert len(lines) == 2
    assert lines[0].startswith("1.1.0.14        ")
    assert lines[0].endswith("launcher-w32.exe")
    assert lines[1].endswith("launcher-w64.exe")


def test_cli_range_excludes_real_launchers():
    result = runner.invoke(app, ["launcher-*.exe", "-d", str(FIXTURES), "--minv", "1.1.0.15", "-q"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == ""
