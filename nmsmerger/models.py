from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List

from .file_utils import iter_files, logical_path
from .logging_utils import log_error, log_warn

BINARY_SUFFIX = ".MBIN"
TEXT_SUFFIX = ".EXML"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class OverlayStatus(str, Enum):
    EXTRACTED = "extracted"
    EXTRACTION_FAILED = "extraction_failed"
    INTEGRATED = "integrated"
    CONFLICTED = "conflicted"
    MERGE_FAILED = "merge_failed"


@dataclass(slots=True)
class ListingEntry:
    entry_id: int
    size: str
    path: str


@dataclass(slots=True)
class AssetRecord:
    path: str
    archive: Path
    entry_id: int
    extracted: bool = False


@dataclass(slots=True)
class OverlayPackage:
    name: str
    source: Path


@dataclass(slots=True)
class ExtractedTree:
    overlay: OverlayPackage
    root: Path

    @property
    def name(self) -> str:
        return self.overlay.name

    def files(self) -> Iterator[tuple[str, Path]]:
        for path in iter_files(self.root):
            yield logical_path(path, self.root), path


@dataclass(slots=True)
class OverlayDelta:
    overlay: str
    changes: Dict[str, str] = field(default_factory=dict)

    @property
    def paths(self) -> List[str]:
        return sorted(self.changes)


@dataclass(slots=True)
class PackResult:
    manifest: List[str] = field(default_factory=list)
    manifest_path: Path | None = None
    archive_path: Path | None = None


@dataclass(slots=True)
class Issue:
    severity: Severity
    stage: str
    message: str
    subject: str | None = None
    detail: str | None = None


@dataclass(slots=True)
class RunReport:
    warnings: List[Issue] = field(default_factory=list)
    errors: List[Issue] = field(default_factory=list)
    overlays: Dict[str, OverlayStatus] = field(default_factory=dict)
    changed_files: Dict[str, int] = field(default_factory=dict)
    manifest: List[str] = field(default_factory=list)
    archive_path: Path | None = None

    def warn(self, stage: str, message: str, subject: str | None = None) -> Issue:
        issue = Issue(Severity.WARNING, stage, message, subject)
        log_warn(message, indent=2)
        self.warnings.append(issue)
        return issue

    def error(
        self,
        stage: str,
        message: str,
        subject: str | None = None,
        exc: BaseException | None = None,
    ) -> Issue:
        detail = str(exc) if exc is not None else None
        issue = Issue(Severity.ERROR, stage, message, subject, detail)
        log_error(message if detail is None else f"{message}\n{detail}")
        self.errors.append(issue)
        return issue

    def set_status(self, overlay: str, status: OverlayStatus) -> None:
        self.overlays[overlay] = status

    def errors_for(self, subject: str) -> List[Issue]:
        return [issue for issue in self.errors if issue.subject == subject]

    @property
    def issues(self) -> List[Issue]:
        return [*self.warnings, *self.errors]
