from __future__ import annotations

import sys
from typing import TextIO

LEVEL_DEFAULT = "info"
# Problems go to stderr so the merge progress on stdout stays readable.
STDERR_LEVELS = frozenset({"warn", "error", "conflict"})


def _normalize_level(level: str | None) -> str:
    if not level:
        return LEVEL_DEFAULT
    return level.strip().lower() or LEVEL_DEFAULT


def _stream_for(level: str) -> TextIO:
    return sys.stderr if level in STDERR_LEVELS else sys.stdout


def log(message: str, level: str = LEVEL_DEFAULT, indent: int = 0) -> None:
    normalized = _normalize_level(level)
    prefix = " " * max(indent, 0)
    lines = str(message).splitlines() or [""]
    stream = _stream_for(normalized)
    print(f"{prefix}[{normalized}] {lines[0]}", file=stream)
    for line in lines[1:]:
        print(f"{prefix}    {line}", file=stream)


def log_task(message: str, indent: int = 0) -> None:
    log(message, "task", indent)


def log_info(message: str, indent: int = 0) -> None:
    log(message, "info", indent)


def log_warn(message: str, indent: int = 0) -> None:
    log(message, "warn", indent)


def log_error(message: str, indent: int = 0) -> None:
    log(message, "error", indent)


def log_conflict(message: str, indent: int = 0) -> None:
    log(message, "conflict", indent)


def log_ok(message: str, indent: int = 0) -> None:
    log(message, "ok", indent)
