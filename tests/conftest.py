"""Shared pytest fixtures: a simulated psarc/MBINCompiler toolchain and a scratch workspace."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence

import pytest

from nmsmerger.context import MergeContext, Workspace
from nmsmerger.errors import ToolError
from nmsmerger.tooling import ExternalTool, ToolConfig

TEXT_PREFIX = "EXML:"
BROKEN_PREFIX = "BROKEN"
SILENT_PREFIX = "SILENT"


def _load_entries(archive: Path) -> List[dict]:
    return json.loads(archive.read_text(encoding="utf-8"))["entries"]


def _write(path: Path, data: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(data, encoding="utf-8")


class FakeToolchain:
    """Stands in for ``run_command``: archives are JSON files, assets are text.

    * ``psarc -l`` writes ``<archive>.txt`` in the working directory.
    * ``psarc -e <id> <id>`` and ``psarc -x`` write ``<archive>_data/<path>``.
    * ``MBINCompiler x.MBIN`` writes ``x.EXML`` (``EXML:`` + content); data starting
      with ``BROKEN`` leaves a partial ``.EXML`` and fails. ``x.EXML`` compiles back.
      An ``.EXML`` starting with ``SILENT`` exits cleanly without writing anything.
    * ``wine psarc.exe create`` writes a JSON archive of the manifest's files.
    """

    def __init__(self, bin_dir: Path) -> None:
        self.bin_dir = bin_dir
        self.calls: List[List[str]] = []
        self.fail_listing = False
        self.fail_pack = False
        bin_dir.mkdir(parents=True, exist_ok=True)
        for name in ("psarc", "MBINCompiler", "psarc.exe", "wine"):
            (bin_dir / name).write_text("", encoding="utf-8")

    def tools(self) -> ToolConfig:
        return ToolConfig(
            psarc=ExternalTool(self.bin_dir / "psarc"),
            mbincompiler=ExternalTool(self.bin_dir / "MBINCompiler"),
            packer=ExternalTool(self.bin_dir / "wine", args=(str(self.bin_dir / "psarc.exe"),)),
        )

    def count(self, tool: str, *prefix: str) -> int:
        return sum(
            1 for call in self.calls
            if Path(call[0]).name == tool and call[1:1 + len(prefix)] == list(prefix)
        )

    def __call__(self, command: Sequence[str], *, cwd: Path | None = None) -> str:
        argv = [str(part) for part in command]
        self.calls.append(argv)
        name = Path(argv[0]).name
        workdir = Path(cwd) if cwd is not None else Path.cwd()
        if name == "psarc":
            return self._psarc(argv, workdir)
        if name == "MBINCompiler":
            return self._compile(argv)
        if name == "wine":
            return self._pack(argv, workdir)
        raise ToolError(argv, 127, f"{name}: command not found")

    def _psarc(self, argv: List[str], workdir: Path) -> str:
        flag, archive = argv[1], Path(argv[-1])
        entries = _load_entries(archive)
        if flag == "-l":
            if self.fail_listing:
                raise ToolError(argv, 1, "cannot open archive")
            lines = ["Listing archive"]
            lines += [f"{entry['id']} {len(entry['data'])} b {entry['path']}" for entry in entries]
            _write(workdir / f"{archive.name}.txt", "\n".join(lines))
            return ""
        target = workdir / f"{archive.name}_data"
        if flag == "-e":
            first, last = int(argv[2]), int(argv[3])
            entries = [entry for entry in entries if first <= entry["id"] <= last]
        elif flag == "-x":
            _write(target / "files.txt", "\n".join(entry["path"] for entry in entries))
        else:
            raise ToolError(argv, 2, f"unknown flag {flag}")
        for entry in entries:
            _write(target / entry["path"], entry["data"])
        return f"extracted {len(entries)} file(s)"

    def _compile(self, argv: List[str]) -> str:
        path = Path(argv[1])
        data = path.read_text(encoding="utf-8")
        if path.suffix == ".MBIN":
            if data.startswith(BROKEN_PREFIX):
                _write(path.with_suffix(".EXML"), "partial")
                raise ToolError(argv, 1, f"Failed to decompile {path.name}")
            _write(path.with_suffix(".EXML"), TEXT_PREFIX + data)
            return ""
        if path.suffix == ".EXML" and data.startswith(SILENT_PREFIX):
            return ""
        if path.suffix == ".EXML" and data.startswith(TEXT_PREFIX):
            _write(path.with_suffix(".MBIN"), data[len(TEXT_PREFIX):])
            return ""
        raise ToolError(argv, 1, f"Failed to compile {path.name}")

    def _pack(self, argv: List[str], workdir: Path) -> str:
        if self.fail_pack:
            raise ToolError(argv, 1, "packer crashed")
        options = dict(arg[2:].split("=", 1) for arg in argv if arg.startswith("--") and "=" in arg)
        manifest = Path(options["inputfile"]).read_text(encoding="utf-8").splitlines()
        packed: Dict[str, str] = {}
        for name in manifest:
            source = workdir / name
            if not source.is_file():
                raise ToolError(argv, 1, f"missing {name}")
            packed[name] = source.read_text(encoding="utf-8")
        _write(Path(options["output"]), json.dumps(packed, sort_keys=True))
        return ""


@pytest.fixture
def toolchain(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeToolchain:
    fake = FakeToolchain(tmp_path / "bin")
    monkeypatch.setattr("nmsmerger.tooling.run_command", fake)
    return fake


@pytest.fixture
def write_archive() -> Callable[..., Path]:
    """Return a helper writing a fake archive from ``{path: data}`` or ``[(id, path, data)]``."""

    def _write_archive(path: Path, files: Dict[str, str] | Iterable[tuple[int, str, str]]) -> Path:
        if isinstance(files, dict):
            rows = [(index, name, data) for index, (name, data) in enumerate(files.items(), start=1)]
        else:
            rows = list(files)
        entries = [{"id": entry_id, "path": name, "data": data} for entry_id, name, data in rows]
        _write(path, json.dumps({"entries": entries}))
        return path

    return _write_archive


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    workspace = Workspace(
        mods_dir=tmp_path / "mods",
        output_dir=tmp_path / "output",
        banks_dir=tmp_path / ".banks",
        extract_dir=tmp_path / ".extract",
        merge_dir=tmp_path / ".merge",
    )
    for path in (workspace.mods_dir, workspace.banks_dir, workspace.extract_dir, workspace.merge_dir):
        path.mkdir(parents=True)
    return workspace


@pytest.fixture
def ctx(workspace: Workspace, toolchain: FakeToolchain) -> MergeContext:
    return MergeContext(workspace=workspace, tools=toolchain.tools())


@pytest.fixture
def read_packed() -> Callable[[Path], Dict[str, str]]:
    def _read_packed(path: Path) -> Dict[str, str]:
        return json.loads(path.read_text(encoding="utf-8"))

    return _read_packed
