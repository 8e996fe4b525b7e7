from __future__ import annotations

from typing import Sequence


class MergerError(RuntimeError):
    """Base class for every failure raised by the merge pipeline."""


class ToolError(MergerError):
    """Raised when an external tool cannot be started or exits with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int | None, output: str) -> None:
        name = command[0] if command else "<empty>"
        status = "could not be started" if returncode is None else f"exited with status {returncode}"
        super().__init__(f"Command '{name}' {status}. output: {output or '<none>'}")
        self.command = tuple(command)
        self.returncode = returncode
        self.output = output


class DiscoveryError(MergerError):
    """The game installation or a required tool could not be located."""


class CatalogError(MergerError):
    """A base archive could not be listed or its listing could not be read."""


class ResolveError(MergerError):
    """A cataloged asset could not be materialized into the merge workspace."""


class ExtractionError(MergerError):
    """An overlay archive could not be unpacked."""


class MergeConflictError(MergerError):
    """An overlay changes files that an already integrated overlay changed differently."""

    def __init__(self, overlay: str, conflicts: dict[str, str]) -> None:
        details = ", ".join(f"{path} (owned by {owner})" for path, owner in sorted(conflicts.items()))
        super().__init__(f"Overlay '{overlay}' conflicts on {details}")
        self.overlay = overlay
        self.conflicts = dict(conflicts)


class PackError(MergerError):
    """The consolidated tree could not be compiled or packed."""
