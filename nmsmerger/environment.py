from __future__ import annotations

import re
from pathlib import Path
from typing import List

from .errors import DiscoveryError
from .logging_utils import log_info, log_ok

STEAM_LIBRARY_PATTERN = re.compile(r'"path"\s*"(.+)"')
GAME_DATA_PARTS = ("steamapps", "common", "No Man's Sky", "GAMEDATA", "PCBANKS")


def parse_steam_libraries(text: str) -> List[Path]:
    """Return every library folder declared in a Steam ``libraryfolders.vdf``."""

    return [Path(match.group(1).replace("\\\\", "\\")) for match in STEAM_LIBRARY_PATTERN.finditer(text)]


def find_game_dir(steam_libraries: Path) -> Path:
    log_info(f"Resolving steam libraries in {steam_libraries}...")
    try:
        text = steam_libraries.read_text(encoding="utf-8")
    except OSError as exc:
        raise DiscoveryError(f"Cannot read steam libraries at {steam_libraries}, aborting.") from exc

    game_dir: Path | None = None
    for library in parse_steam_libraries(text):
        candidate = library.joinpath(*GAME_DATA_PARTS)
        if candidate.is_dir():
            game_dir = candidate
    if game_dir is None:
        raise DiscoveryError(f"No steam library in {steam_libraries} contains the game, aborting.")
    log_ok(f"Found game at {game_dir}.")
    return game_dir


def resolve_game_dir(override: Path | None, steam_libraries: Path) -> Path:
    if override is None:
        return find_game_dir(steam_libraries)
    if not override.is_dir():
        raise DiscoveryError(f"Configured game directory {override} does not exist, aborting.")
    log_ok(f"Using configured game directory {override}.")
    return override
