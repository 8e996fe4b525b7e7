from __future__ import annotations

from .catalog import Catalog, discover_archives
from .context import MergeContext, Workspace
from .environment import resolve_game_dir
from .errors import MergerError
from .extractor import discover_overlays, extract_overlays
from .file_utils import empty_directory
from .load_config import ProgramConfig
from .logging_utils import log_info, log_ok, log_task, log_warn
from .merge_engine import merge_overlays
from .models import RunReport
from .packer import pack
from .tooling import prepare_tools


def build_workspace(config: ProgramConfig) -> Workspace:
    return Workspace(
        mods_dir=config.mods_dir,
        output_dir=config.output_dir,
        banks_dir=config.banks_dir,
        extract_dir=config.extract_dir,
        merge_dir=config.merge_dir,
    )


def prepare_context(config: ProgramConfig, report: RunReport) -> MergeContext:
    """Resolve the game, the toolchain and the catalog. Any failure here is fatal."""

    log_task("Resolving environment...")
    game_dir = resolve_game_dir(config.game_dir, config.steam_libraries)
    tools = prepare_tools(
        psarc=config.psarc,
        mbincompiler=config.mbincompiler,
        psarc_packer=config.psarc_packer,
        wine=config.wine or None,
    )
    ctx = MergeContext(workspace=build_workspace(config), tools=tools, report=report)

    log_task("Retrieving content...")
    if config.refresh_listings:
        empty_directory(ctx.workspace.banks_dir)
    archives = discover_archives(game_dir)
    ctx.catalog = Catalog.build(archives, ctx.workspace.banks_dir, tools.psarc)
    log_ok(f"Indexed {len(ctx.catalog)} asset(s) from {len(archives)} archive(s).")
    return ctx


def clean(ctx: MergeContext) -> None:
    empty_directory(ctx.workspace.extract_dir)
    empty_directory(ctx.workspace.merge_dir)


def run_pipeline(config: ProgramConfig) -> RunReport:
    """Catalog, extract, merge and pack every overlay; return what happened.

    Errors never escape: fatal ones stop the run, per-overlay ones exclude that
    overlay, and all of them end up on the returned report.
    """

    report = RunReport()
    try:
        ctx = prepare_context(config, report)
    except (MergerError, OSError) as exc:
        report.error("init", "Cannot prepare the merge environment, aborting.", exc=exc)
        return report

    overlays = discover_overlays(ctx.workspace.mods_dir, config.priority, config.ignore_mods)
    if not overlays:
        log_warn(f"No mods found under {ctx.workspace.mods_dir}.")
    else:
        log_info(f"Found {len(overlays)} mod(s) to merge.")

    try:
        empty_directory(ctx.workspace.extract_dir)
        empty_directory(ctx.workspace.merge_dir)
    except OSError as exc:
        report.error("init", "Cannot prepare the scratch directories, aborting.", exc=exc)
        return report

    trees = extract_overlays(overlays, ctx)
    merge_overlays(trees, ctx)
    pack(ctx, manifest_name=config.manifest_name, archive_name=config.archive_name)

    try:
        clean(ctx)
    except OSError as exc:
        report.error("clean", "Encountered an error while cleaning up.", exc=exc)
    return report
