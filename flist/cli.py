from __future__ import annotations

import logging
from importlib import metadata
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError

from flist.config import AppConfig, OutputFormat, config_to_snapshot, load_config
from flist.log import setup_logging
from flist.reporters.console import render_console, render_header
from flist.reporters.csv_report import write_listing_csv
from flist.reporters.json_report import build_listing, write_json
from flist.reporters.text_report import write_listing_text
from flist.scanner import (
    FileInfo,
    ScanLimits,
    collect_file_info,
    enumerate_files,
    filter_by_version,
    sort_by_path,
)
from flist.version import Version, VersionFormatError

app = typer.Typer(add_completion=False)

logger = logging.getLogger(__name__)


def version_callback(value: bool):
    if value:
        try:
            v = metadata.version("flist")
        except metadata.PackageNotFoundError:
            v = "0.1.0-dev"
        typer.echo(f"flist version: {v}")
        raise typer.Exit()


def _limits_from_cfg(cfg: AppConfig) -> ScanLimits:
    lim = cfg.limits
    return ScanLimits(
        max_file_bytes=lim.max_file_bytes,
        pe_max_sections=lim.pe_max_sections,
        max_version_resource_bytes=lim.max_version_resource_bytes,
    )


def _parse_version_option(value: Optional[str], *, option: str) -> Optional[Version]:
    if value is None:
        return None
    try:
        return Version.parse(value)
    except VersionFormatError as e:
        raise typer.BadParameter(str(e), param_hint=option)


def _load_cfg(config: Optional[str]) -> AppConfig:
    try:
        return load_config(config)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        raise typer.BadParameter(f"Cannot load config {config}: {e}", param_hint="--config")


def _write_output(path: Path, files: list[FileInfo], fmt: OutputFormat, include_version: bool, listing_meta: dict) -> None:
    if fmt == OutputFormat.csv:
        write_listing_csv(path, files, include_version)
    elif fmt == OutputFormat.json:
        listing = build_listing(files, include_file_version=include_version, **listing_meta)
        write_json(path, listing.model_dump())
    else:
        write_listing_text(path, files, include_version)


@app.command()
def main(
    pattern: Optional[str] = typer.Argument(None, help="File name glob (e.g. *.dll, *.exe). Default: *"),
    include_file_version: bool = typer.Option(False, "--ifs", "-i", help="Include file version information."),
    sort_path: bool = typer.Option(False, "--sp", "-s", help="Sort output by file path."),
    minv: Optional[str] = typer.Option(None, "--minv", metavar="VERSION", help="Minimum file version (inclusive), e.g. 1.2.3.4."),
    maxv: Optional[str] = typer.Option(None, "--maxv", metavar="VERSION", help="Maximum file version (inclusive), e.g. 2.0.0.0."),
    directory: Optional[str] = typer.Option(None, "--directory", "-d", help="Directory to search. Default: current directory."),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Also write results to this file."),
    output_format: Optional[OutputFormat] = typer.Option(None, "--format", help="Format of the --output file."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print results."),
    jobs: Optional[int] = typer.Option(None, "--jobs", "-j", min=1, help="Worker threads for version extraction."),
    config: str = typer.Option(None, "--config", help="Path to YAML config."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log why files have no version."),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True, help="Show version and exit."
    ),
):
    """
    List files in a directory tree, optionally with PE file versions.
    """
    setup_logging(verbose)
    cfg = _load_cfg(config)

    # Filters are validated before anything touches the file system.
    min_version = _parse_version_option(minv, option="--minv")
    max_version = _parse_version_option(maxv, option="--maxv")

    pattern = pattern if pattern is not None else cfg.pattern
    include_version = include_file_version or cfg.include_file_version
    sort_path = sort_path or cfg.sort_by_path
    quiet = quiet or cfg.quiet
    fmt = output_format if output_format is not None else cfg.output_format
    workers = jobs if jobs is not None else cfg.workers

    filtering = min_version is not None or max_version is not None
    if filtering:
        include_version = True

    dir_value = directory if directory is not None else cfg.directory
    root = Path(dir_value).expanduser().resolve() if dir_value else Path.cwd()
    if not root.is_dir():
        raise typer.BadParameter(f"Directory does not exist: {root}", param_hint="--directory")

    if not quiet:
        render_header(root)

    files = enumerate_files(root, pattern)
    logger.debug("matched %d files under %s", len(files), root)

    infos = collect_file_info(files, include_version=include_version, limits=_limits_from_cfg(cfg), workers=workers)
    if filtering:
        infos = filter_by_version(infos, min_version, max_version)
    if sort_path:
        infos = sort_by_path(infos)

    render_console(infos, include_version, quiet)

    if output:
        out_path = Path(output).expanduser()
        meta = {
            "directory": str(root),
            "pattern": pattern,
            "min_version": str(min_version) if min_version is not None else None,
            "max_version": str(max_version) if max_version is not None else None,
            "config_snapshot": config_to_snapshot(cfg),
        }
        try:
            _write_output(out_path, infos, fmt, include_version, meta)
        except OSError as e:
            typer.secho(f"Failed to write to output file '{output}': {e}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
