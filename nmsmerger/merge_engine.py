from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List

from .context import MergeContext
from .errors import MergeConflictError
from .file_utils import ensure_directory, file_digest, iter_files, logical_path, remove_path, replace_files
from .logging_utils import log_conflict, log_info, log_ok, log_task
from .models import BINARY_SUFFIX, TEXT_SUFFIX, ExtractedTree, OverlayDelta, OverlayStatus

STAGE = "merge"


def asset_key(name: str) -> str:
    """Map both forms of an asset (binary or decompiled) to its binary path."""
    if name.endswith(TEXT_SUFFIX):
        return name[: -len(TEXT_SUFFIX)] + BINARY_SUFFIX
    return name


def _other_form(name: str) -> str | None:
    if name.endswith(TEXT_SUFFIX):
        return name[: -len(TEXT_SUFFIX)] + BINARY_SUFFIX
    if name.endswith(BINARY_SUFFIX):
        return name[: -len(BINARY_SUFFIX)] + TEXT_SUFFIX
    return None


class ConsolidatedTree:
    """The merged output: a base snapshot plus the deltas of integrated overlays.

    ``trunk_dir`` always holds the base with every integrated delta applied, in
    integration order. A delta that conflicts with an integrated one is refused
    before any file of the trunk is touched. An asset shipped raw (``.MBIN``) and
    the same asset shipped decompiled (``.EXML``) count as the same file.
    """

    def __init__(self, trunk_dir: Path) -> None:
        self.trunk_dir = trunk_dir
        self.base: Dict[str, str] = {}
        self.history: List[OverlayDelta] = []
        # asset key -> (logical path, digest, overlay)
        self._owners: Dict[str, tuple[str, str, str]] = {}

    def open(self) -> "ConsolidatedTree":
        """Snapshot the current content of the trunk directory as the base."""
        ensure_directory(self.trunk_dir)
        self.base = {logical_path(path, self.trunk_dir): file_digest(path) for path in iter_files(self.trunk_dir)}
        self.history = []
        self._owners = {}
        return self

    @property
    def integrated(self) -> List[str]:
        return [delta.overlay for delta in self.history]

    def compute_delta(self, tree: ExtractedTree) -> OverlayDelta:
        """Lay the overlay over the base and keep only the files it really changes."""
        delta = OverlayDelta(overlay=tree.name)
        for name, path in tree.files():
            digest = file_digest(path)
            if self.base.get(name) != digest:
                delta.changes[name] = digest
        return delta

    def conflicts_with(self, delta: OverlayDelta) -> Dict[str, str]:
        conflicts: Dict[str, str] = {}
        for name, digest in delta.changes.items():
            owner = self._owners.get(asset_key(name))
            if owner is not None and (owner[0], owner[1]) != (name, digest):
                conflicts[name] = owner[2]
        return conflicts

    def integrate(self, tree: ExtractedTree) -> OverlayDelta:
        delta = self.compute_delta(tree)
        conflicts = self.conflicts_with(delta)
        if conflicts:
            raise MergeConflictError(tree.name, conflicts)

        replace_files([(tree.root / name, self.trunk_dir / name) for name in delta.paths])
        for name in delta.paths:
            # The trunk keeps a single form of each asset: the one just written.
            other = _other_form(name)
            if other is not None and other not in delta.changes:
                (self.trunk_dir / other).unlink(missing_ok=True)
        for name, digest in delta.changes.items():
            self._owners.setdefault(asset_key(name), (name, digest, tree.name))
        self.history.append(delta)
        return delta


def merge_overlays(trees: Iterable[ExtractedTree], ctx: MergeContext) -> ConsolidatedTree:
    log_task("Merging mods...")
    consolidated = ConsolidatedTree(ctx.workspace.merge_dir).open()
    log_info(f"Base snapshot holds {len(consolidated.base)} file(s).", indent=2)

    for tree in trees:
        log_info(f"Merging {tree.name}...", indent=2)
        try:
            delta = consolidated.integrate(tree)
        except (MergeConflictError, OSError) as exc:
            status = OverlayStatus.MERGE_FAILED
            if isinstance(exc, MergeConflictError):
                status = OverlayStatus.CONFLICTED
                for path, owner in sorted(exc.conflicts.items()):
                    log_conflict(f"{path}: already changed by {owner}", indent=4)
            ctx.report.error(
                STAGE,
                f"Encountered an error while merging {tree.name}.",
                subject=tree.name,
                exc=exc,
            )
            ctx.report.set_status(tree.name, status)
        else:
            log_ok(f"Integrated {len(delta.changes)} changed file(s).", indent=4)
            ctx.report.set_status(tree.name, OverlayStatus.INTEGRATED)
            ctx.report.changed_files[tree.name] = len(delta.changes)
        finally:
            if tree.root.exists():
                remove_path(tree.root)

    return consolidated
