from __future__ import annotations

import toml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .logging_utils import log_warn

DEFAULT_STEAM_LIBRARIES = "~/.steam/root/config/libraryfolders.vdf"
DEFAULT_MBINCOMPILER = "lib/MBINCompiler/Build/Release/net7.0/linux-x64/publish/MBINCompiler"
DEFAULT_PSARC = "lib/psarc/bin/rls/psarc"
DEFAULT_PSARC_PACKER = "lib/psarcpacker/psarc.exe"


@dataclass(slots=True)
class ProgramConfig:
    mods_dir: Path
    output_dir: Path
    banks_dir: Path
    extract_dir: Path
    merge_dir: Path
    steam_libraries: Path
    psarc: str
    mbincompiler: str
    psarc_packer: str
    wine: str = "wine"
    game_dir: Path | None = None
    priority: List[str] = field(default_factory=list)
    ignore_mods: List[str] = field(default_factory=list)
    refresh_listings: bool = False
    archive_name: str = "merged.pak"
    manifest_name: str = "mods.txt"


def _resolve(base: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else (base / path).resolve()


def _tool(base: Path, value: str) -> str:
    # Bare command names stay as-is so they can be looked up on PATH.
    if not value or Path(value).name == value:
        return value
    return str(_resolve(base, value))


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"Section [{name}] must be a table.")
    return section


def build_program_config(config: Dict[str, Any], base_dir: Path) -> ProgramConfig:
    """Turn a parsed TOML document into a ProgramConfig, relative paths anchored at ``base_dir``."""

    paths = _section(config, "paths")
    tools = _section(config, "tools")
    merge = _section(config, "merge")
    output = _section(config, "output")

    game = paths.get("game") or ""
    return ProgramConfig(
        mods_dir=_resolve(base_dir, paths.get("mods", "mods")),
        output_dir=_resolve(base_dir, paths.get("output", "output")),
        banks_dir=_resolve(base_dir, paths.get("banks", ".banks")),
        extract_dir=_resolve(base_dir, paths.get("extract", ".extract")),
        merge_dir=_resolve(base_dir, paths.get("merge", ".merge")),
        steam_libraries=Path(paths.get("steam_libraries", DEFAULT_STEAM_LIBRARIES)).expanduser(),
        game_dir=_resolve(base_dir, game) if game else None,
        psarc=_tool(base_dir, tools.get("psarc", DEFAULT_PSARC)),
        mbincompiler=_tool(base_dir, tools.get("mbincompiler", DEFAULT_MBINCOMPILER)),
        psarc_packer=_tool(base_dir, tools.get("psarc_packer", DEFAULT_PSARC_PACKER)),
        wine=_tool(base_dir, tools.get("wine", "wine")),
        priority=[str(name) for name in merge.get("priority", [])],
        ignore_mods=[str(name) for name in merge.get("ignore_mods", [])],
        refresh_listings=bool(merge.get("refresh_listings", False)),
        archive_name=str(output.get("archive", "merged.pak")),
        manifest_name=str(output.get("manifest", "mods.txt")),
    )


def load_program_config(config_path: Path) -> ProgramConfig:
    """Load the merger configuration from a TOML file.

    Every key is optional. A missing file is not an error: the defaults describe
    the usual layout (``mods/``, ``output/`` and the scratch folders next to the
    configuration, tools under ``lib/``).
    """

    base_dir = config_path.expanduser().resolve().parent

    if not config_path.exists():
        log_warn(f"Config file {config_path} not found. Proceeding with defaults.")
        return build_program_config({}, base_dir)

    raw_text = config_path.read_text(encoding="utf-8")
    try:
        config = toml.loads(raw_text)
    except toml.TomlDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {config_path}") from exc

    return build_program_config(config, base_dir)
