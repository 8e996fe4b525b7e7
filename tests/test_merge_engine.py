"""Tests for the layered, conflict-aware merge."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import pytest

from nmsmerger.errors import MergeConflictError
from nmsmerger.merge_engine import ConsolidatedTree, merge_overlays
from nmsmerger.models import ExtractedTree, OverlayPackage, OverlayStatus


def _tree(root_dir: Path, name: str, files: Dict[str, str]) -> ExtractedTree:
    root = root_dir / f"{name}.pak_data"
    for path, data in files.items():
        target = root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(data, encoding="utf-8")
    return ExtractedTree(overlay=OverlayPackage(name=name, source=root_dir / f"{name}.pak"), root=root)


def _trunk(trunk_dir: Path) -> Dict[str, str]:
    return {
        path.relative_to(trunk_dir).as_posix(): path.read_text(encoding="utf-8")
        for path in trunk_dir.rglob("*")
        if path.is_file()
    }


@pytest.mark.parametrize("order", [("X", "Y"), ("Y", "X")])
def test_disjoint_overlays_commute(tmp_path: Path, ctx, order) -> None:
    trees = {
        "X": _tree(ctx.workspace.extract_dir, "X", {"a": "from X"}),
        "Y": _tree(ctx.workspace.extract_dir, "Y", {"b": "from Y"}),
    }

    consolidated = merge_overlays([trees[name] for name in order], ctx)

    assert consolidated.integrated == list(order)
    assert _trunk(ctx.workspace.merge_dir) == {"a": "from X", "b": "from Y"}
    assert not ctx.report.errors


def test_conflicting_overlay_is_excluded(tmp_path: Path, ctx) -> None:
    x = _tree(ctx.workspace.extract_dir, "X", {"f": "x content"})
    y = _tree(ctx.workspace.extract_dir, "Y", {"f": "y content", "g": "y only"})
    z = _tree(ctx.workspace.extract_dir, "Z", {"h": "z content"})

    consolidated = merge_overlays([x, y, z], ctx)

    assert consolidated.integrated == ["X", "Z"]
    assert _trunk(ctx.workspace.merge_dir) == {"f": "x content", "h": "z content"}
    assert [issue.subject for issue in ctx.report.errors] == ["Y"]
    assert "Y" in ctx.report.errors[0].message
    assert ctx.report.overlays["Y"] == OverlayStatus.CONFLICTED
    assert ctx.report.overlays["Z"] == OverlayStatus.INTEGRATED


def test_identical_changes_do_not_conflict(tmp_path: Path, ctx) -> None:
    x = _tree(ctx.workspace.extract_dir, "X", {"f": "same"})
    y = _tree(ctx.workspace.extract_dir, "Y", {"f": "same", "g": "extra"})

    consolidated = merge_overlays([x, y], ctx)

    assert consolidated.integrated == ["X", "Y"]
    assert _trunk(ctx.workspace.merge_dir) == {"f": "same", "g": "extra"}


def test_files_equal_to_base_are_not_part_of_delta(tmp_path: Path, ctx) -> None:
    (ctx.workspace.merge_dir / "base.EXML").write_text("baseline", encoding="utf-8")
    consolidated = ConsolidatedTree(ctx.workspace.merge_dir).open()
    x = _tree(ctx.workspace.extract_dir, "X", {"base.EXML": "baseline", "new": "1"})
    y = _tree(ctx.workspace.extract_dir, "Y", {"base.EXML": "changed"})

    assert consolidated.integrate(x).paths == ["new"]
    assert consolidated.integrate(y).paths == ["base.EXML"]
    assert _trunk(ctx.workspace.merge_dir) == {"base.EXML": "changed", "new": "1"}


def test_conflict_leaves_trunk_untouched(tmp_path: Path, ctx) -> None:
    consolidated = ConsolidatedTree(ctx.workspace.merge_dir).open()
    consolidated.integrate(_tree(ctx.workspace.extract_dir, "X", {"f": "x"}))
    before = _trunk(ctx.workspace.merge_dir)

    with pytest.raises(MergeConflictError) as excinfo:
        consolidated.integrate(_tree(ctx.workspace.extract_dir, "Y", {"f": "y", "other": "y"}))

    assert excinfo.value.conflicts == {"f": "X"}
    assert _trunk(ctx.workspace.merge_dir) == before
    assert consolidated.integrated == ["X"]


def test_extracted_trees_are_removed_after_merge(tmp_path: Path, ctx) -> None:
    x = _tree(ctx.workspace.extract_dir, "X", {"f": "x"})
    y = _tree(ctx.workspace.extract_dir, "Y", {"f": "y"})

    merge_overlays([x, y], ctx)

    assert not x.root.exists()
    assert not y.root.exists()


def test_raw_and_decompiled_forms_of_an_asset_conflict(tmp_path: Path, ctx) -> None:
    consolidated = ConsolidatedTree(ctx.workspace.merge_dir).open()
    consolidated.integrate(_tree(ctx.workspace.extract_dir, "X", {"x.MBIN": "raw from X"}))

    with pytest.raises(MergeConflictError) as excinfo:
        consolidated.integrate(_tree(ctx.workspace.extract_dir, "Y", {"x.EXML": "EXML:from Y"}))

    assert excinfo.value.conflicts == {"x.EXML": "X"}
    assert _trunk(ctx.workspace.merge_dir) == {"x.MBIN": "raw from X"}


def test_raw_binary_replaces_decompiled_baseline(tmp_path: Path, ctx) -> None:
    (ctx.workspace.merge_dir / "x.EXML").write_text("EXML:original", encoding="utf-8")
    consolidated = ConsolidatedTree(ctx.workspace.merge_dir).open()

    delta = consolidated.integrate(_tree(ctx.workspace.extract_dir, "X", {"x.MBIN": "raw from X"}))

    assert delta.paths == ["x.MBIN"]
    assert _trunk(ctx.workspace.merge_dir) == {"x.MBIN": "raw from X"}
