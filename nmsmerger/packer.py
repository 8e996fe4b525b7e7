from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from .context import MergeContext
from .errors import MergerError, PackError
from .file_utils import empty_directory, iter_files, logical_path
from .logging_utils import log_info, log_ok, log_task
from .models import BINARY_SUFFIX, TEXT_SUFFIX, PackResult

STAGE = "pack"
DEFAULT_MANIFEST_NAME = "mods.txt"
DEFAULT_ARCHIVE_NAME = "merged.pak"


def build_manifest(paths: Iterable[str]) -> List[str]:
    return sorted(set(paths))


def write_manifest(manifest: List[str], destination: Path) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text("\n".join(manifest), encoding="utf-8")
    return destination


def compile_file(path: Path, ctx: MergeContext) -> Path:
    """Compile a textual asset back to binary and drop the textual form."""

    compiled = path.with_suffix(BINARY_SUFFIX)
    # A stale binary must not pass for the compiler's output.
    compiled.unlink(missing_ok=True)
    ctx.tools.mbincompiler.run([str(path)], cwd=ctx.workspace.merge_dir)
    if not compiled.is_file():
        raise PackError(f"Compiling {path.name} did not produce {compiled.name}.")
    path.unlink()
    return compiled


def pack(
    ctx: MergeContext,
    manifest_name: str = DEFAULT_MANIFEST_NAME,
    archive_name: str = DEFAULT_ARCHIVE_NAME,
) -> PackResult:
    """Recompile the trunk, write the manifest and pack the merged archive.

    A failure is recorded on the run report; the returned result still holds the
    manifest entries collected up to that point.
    """

    log_task("Packing mods...")
    merge_dir = ctx.workspace.merge_dir
    output_dir = ctx.workspace.output_dir
    result = PackResult()
    packed: List[str] = []

    try:
        empty_directory(output_dir)
        for path in list(iter_files(merge_dir)):
            name = logical_path(path, merge_dir)
            log_info(f"Packing {name}...", indent=2)
            if path.suffix == TEXT_SUFFIX:
                compiled = compile_file(path, ctx)
                packed.append(logical_path(compiled, merge_dir))
            else:
                packed.append(name)

        result.manifest = build_manifest(packed)
        result.manifest_path = write_manifest(result.manifest, output_dir / manifest_name)

        archive = output_dir / archive_name
        ctx.tools.packer.run(
            ["create", "-a", "--zlib", f"--inputfile={result.manifest_path}", f"--output={archive}"],
            cwd=merge_dir,
        )
        if not archive.is_file():
            raise PackError(f"Packer did not produce {archive}.")
        result.archive_path = archive
        log_ok(f"Packed {len(result.manifest)} file(s) into {archive}.")
    except (MergerError, OSError) as exc:
        if not result.manifest:
            result.manifest = build_manifest(packed)
        ctx.report.error(STAGE, "Encountered an error while packing mods.", exc=exc)

    ctx.report.manifest = list(result.manifest)
    ctx.report.archive_path = result.archive_path
    return result
