from __future__ import annotations

import hashlib
import os
import shutil
from pathlib import Path
from typing import Iterator

CHUNK_SIZE = 1024 * 1024


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def empty_directory(path: Path) -> None:
    """Make sure ``path`` exists and holds nothing."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def move_file(source: Path, destination: Path) -> None:
    """Move a file, replacing whatever sits at the destination."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    if destination.is_dir():
        shutil.rmtree(destination)
    shutil.move(str(source), str(destination))


def iter_files(root: Path) -> Iterator[Path]:
    """Yield every regular file under ``root`` in a stable order."""
    if not root.is_dir():
        return
    for path in sorted(root.rglob("*")):
        if path.is_file():
            yield path


def logical_path(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


def file_digest(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def replace_files(pairs: list[tuple[Path, Path]]) -> None:
    """Copy each source over its destination, all or nothing.

    Every source is first copied next to its destination; only when all copies
    succeeded are they renamed into place.
    """
    staged: list[tuple[Path, Path]] = []
    try:
        for source, destination in pairs:
            destination.parent.mkdir(parents=True, exist_ok=True)
            partial = destination.with_name(destination.name + ".partial")
            shutil.copy2(source, partial)
            staged.append((partial, destination))
    except OSError:
        for partial, _ in staged:
            partial.unlink(missing_ok=True)
        raise
    for partial, destination in staged:
        os.replace(partial, destination)
