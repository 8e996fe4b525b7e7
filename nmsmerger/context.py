from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .catalog import Catalog
from .models import RunReport
from .tooling import ToolConfig


@dataclass(slots=True)
class Workspace:
    mods_dir: Path
    output_dir: Path
    banks_dir: Path
    extract_dir: Path
    merge_dir: Path


@dataclass(slots=True)
class MergeContext:
    """Everything a stage needs: paths, tool handles, the catalog and the run report."""

    workspace: Workspace
    tools: ToolConfig
    report: RunReport = field(default_factory=RunReport)
    catalog: Catalog = field(default_factory=Catalog)
