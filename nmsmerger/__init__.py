"""Core package for the NMS mod merger."""

from .catalog import Catalog, discover_archives, parse_listing_line
from .context import MergeContext, Workspace
from .errors import MergeConflictError, MergerError, ToolError
from .extractor import discover_overlays, extract_overlay, extract_overlays
from .load_config import ProgramConfig, load_program_config
from .merge_engine import ConsolidatedTree, merge_overlays
from .models import AssetRecord, ExtractedTree, OverlayDelta, OverlayPackage, RunReport
from .packer import pack
from .pipeline import run_pipeline
from .report import export_report, print_run_summary
from .resolver import ensure_extracted

__all__ = [
    "AssetRecord",
    "Catalog",
    "ConsolidatedTree",
    "ExtractedTree",
    "MergeConflictError",
    "MergeContext",
    "MergerError",
    "OverlayDelta",
    "OverlayPackage",
    "ProgramConfig",
    "RunReport",
    "ToolError",
    "Workspace",
    "load_program_config",
    "discover_archives",
    "parse_listing_line",
    "discover_overlays",
    "extract_overlay",
    "extract_overlays",
    "ensure_extracted",
    "merge_overlays",
    "pack",
    "run_pipeline",
    "print_run_summary",
    "export_report",
]
