from __future__ import annotations

from .context import MergeContext
from .errors import ResolveError, ToolError
from .file_utils import ensure_directory, iter_files, logical_path, move_file, remove_path
from .logging_utils import log_info
from .models import BINARY_SUFFIX, TEXT_SUFFIX, AssetRecord


def ensure_extracted(record: AssetRecord, ctx: MergeContext) -> bool:
    """Materialize the original, decompiled form of ``record`` into the merge workspace.

    The extraction runs at most once per record: the ``extracted`` flag is only set
    after the asset landed in the workspace, and later calls return immediately.
    Returns True when this call did the work.
    """

    if record.extracted:
        return False

    merge_dir = ctx.workspace.merge_dir
    ensure_directory(merge_dir)
    staging = merge_dir / f"{record.archive.name}_data"
    entry_id = str(record.entry_id)
    log_info(f"{record.archive.name} at {entry_id} from game files...", indent=4)

    try:
        ctx.tools.psarc.run(["-e", entry_id, entry_id, str(record.archive.resolve())], cwd=merge_dir)
        if not staging.is_dir():
            raise ResolveError(f"Extracting {record.path} from {record.archive.name} produced nothing.")
        for source in list(iter_files(staging)):
            target = merge_dir / logical_path(source, staging)
            move_file(source, target)
            if target.suffix != BINARY_SUFFIX:
                continue
            try:
                ctx.tools.mbincompiler.run([str(target)], cwd=merge_dir)
            except ToolError:
                target.unlink(missing_ok=True)
                target.with_suffix(TEXT_SUFFIX).unlink(missing_ok=True)
                raise
            if target.with_suffix(TEXT_SUFFIX).is_file():
                target.unlink()
    finally:
        if staging.exists():
            remove_path(staging)

    record.extracted = True
    return True
