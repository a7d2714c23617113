from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field


class OutputFormat(str, Enum):
    text = "text"
    csv = "csv"
    json = "json"


class Limits(BaseModel):
    # Larger files are listed without a version rather than read into memory
    max_file_bytes: int = Field(default=512 * 1024 * 1024, gt=0)

    pe_max_sections: int = Field(default=96, gt=0)
    max_version_resource_bytes: int = Field(default=2_000_000, gt=0)


class AppConfig(BaseModel):
    pattern: str = "*"
    directory: Optional[str] = None
    include_file_version: bool = False
    sort_by_path: bool = False
    quiet: bool = False
    output_format: OutputFormat = OutputFormat.text
    workers: int = Field(default=1, ge=1)
    limits: Limits = Limits()


def load_config(path: Optional[str]) -> AppConfig:
    if not path:
        return AppConfig()
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    return AppConfig.model_validate(data or {})


def config_to_snapshot(cfg: AppConfig) -> Dict[str, Any]:
    return cfg.model_dump(mode="json")
