from __future__ import annotations

import shutil
from pathlib import Path
from typing import Iterable, List

from .context import MergeContext
from .errors import ExtractionError, MergerError, ToolError
from .file_utils import ensure_directory, iter_files, logical_path, remove_path
from .logging_utils import log_info, log_task, log_warn
from .models import BINARY_SUFFIX, TEXT_SUFFIX, ExtractedTree, OverlayPackage, OverlayStatus
from .resolver import ensure_extracted

OVERLAY_SUFFIX = ".pak"
STAGE = "extract"


def discover_overlays(
    mods_dir: Path,
    priority: Iterable[str] = (),
    ignore: Iterable[str] = (),
) -> List[OverlayPackage]:
    """Return the overlay archives to merge, in integration order.

    Overlays named in ``priority`` come first, in that order; the others follow
    sorted by name. Both ``priority`` and ``ignore`` match names regardless of
    case.
    """

    if not mods_dir.is_dir():
        log_warn(f"Mods directory {mods_dir} not found.")
        return []

    ignored = {name.lower() for name in ignore}
    overlays: List[OverlayPackage] = []
    for path in sorted(mods_dir.iterdir()):
        if not path.is_file() or path.suffix.lower() != OVERLAY_SUFFIX:
            continue
        if path.stem.lower() in ignored:
            log_info(f"Skipped {path.name}: ignored via config.", indent=2)
            continue
        overlays.append(OverlayPackage(name=path.stem, source=path))

    rank: dict[str, int] = {}
    for name in priority:
        rank.setdefault(name.lower(), len(rank))
    return sorted(overlays, key=lambda overlay: rank.get(overlay.name.lower(), len(rank)))


def _tree_root(overlay: OverlayPackage, extract_dir: Path) -> Path:
    return extract_dir / f"{overlay.source.name}_data"


def _pass_through(binary: Path, name: str, overlay: OverlayPackage, ctx: MergeContext) -> None:
    binary.with_suffix(TEXT_SUFFIX).unlink(missing_ok=True)
    ctx.report.warn(STAGE, f"Could not extract {name} from {overlay.name}, passing it as-is.", subject=overlay.name)


def extract_overlay(overlay: OverlayPackage, ctx: MergeContext) -> ExtractedTree:
    """Unpack one overlay and decompile its binary assets.

    Baselines of cataloged assets are materialized into the merge workspace
    before the overlay's own copy is decompiled. An asset that cannot be
    decompiled keeps its raw binary in the overlay tree instead, so it is
    merged, and checked for conflicts, like any other file.
    """

    extract_dir = ctx.workspace.extract_dir
    ensure_directory(extract_dir)
    working_copy = extract_dir / overlay.source.name
    root = _tree_root(overlay, extract_dir)

    shutil.copy2(overlay.source, working_copy)
    try:
        ctx.tools.psarc.run(["-x", str(working_copy.resolve())], cwd=extract_dir)
        if not root.is_dir():
            raise ExtractionError(f"Unpacking {overlay.source.name} produced no {root.name} directory.")

        binaries = [path for path in iter_files(root) if path.suffix == BINARY_SUFFIX]
        consumed: List[Path] = []
        for binary in binaries:
            name = logical_path(binary, root)
            record = ctx.catalog.lookup(name)
            if record is not None and not record.extracted:
                ensure_extracted(record, ctx)

            try:
                ctx.tools.mbincompiler.run([str(binary)], cwd=extract_dir)
            except ToolError:
                _pass_through(binary, name, overlay, ctx)
                continue
            if not binary.with_suffix(TEXT_SUFFIX).is_file():
                _pass_through(binary, name, overlay, ctx)
                continue
            consumed.append(binary)

        for residue in [*root.glob("*.txt"), *consumed]:
            if residue.exists():
                remove_path(residue)
    finally:
        working_copy.unlink(missing_ok=True)

    return ExtractedTree(overlay=overlay, root=root)


def extract_overlays(overlays: Iterable[OverlayPackage], ctx: MergeContext) -> List[ExtractedTree]:
    log_task("Extracting mods...")
    trees: List[ExtractedTree] = []
    for overlay in overlays:
        log_info(f"Extracting {overlay.name}...", indent=2)
        try:
            tree = extract_overlay(overlay, ctx)
        except (MergerError, OSError) as exc:
            root = _tree_root(overlay, ctx.workspace.extract_dir)
            if root.exists():
                remove_path(root)
            ctx.report.error(
                STAGE,
                f"Encountered an error while extracting {overlay.name}.",
                subject=overlay.name,
                exc=exc,
            )
            ctx.report.set_status(overlay.name, OverlayStatus.EXTRACTION_FAILED)
            continue
        ctx.report.set_status(overlay.name, OverlayStatus.EXTRACTED)
        trees.append(tree)
    return trees
