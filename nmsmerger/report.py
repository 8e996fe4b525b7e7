from __future__ import annotations

from pathlib import Path
from typing import Any, List

import inflect
from openpyxl import Workbook

from .logging_utils import log, log_error, log_ok, log_warn
from .models import Issue, RunReport

_INFLECT = inflect.engine()


def pluralize(word: str, count: int) -> str:
    return f"{count} {_INFLECT.plural_noun(word, count)}"


def print_run_summary(report: RunReport) -> None:
    log(
        f"Finished with {pluralize('warning', len(report.warnings))} "
        f"and {pluralize('error', len(report.errors))}.",
        "done",
    )
    if report.warnings:
        log_warn(pluralize("warning", len(report.warnings)), indent=2)
        for issue in report.warnings:
            log_warn(issue.message, indent=4)
    if report.errors:
        log_error(pluralize("error", len(report.errors)), indent=2)
        for issue in report.errors:
            log_error(issue.message, indent=4)
    if report.archive_path is not None:
        log_ok(f"Merged archive written to {report.archive_path}")


def _build_overlay_rows(report: RunReport) -> List[List[Any]]:
    rows: List[List[Any]] = []
    for name, status in report.overlays.items():
        messages = "; ".join(issue.message for issue in report.errors_for(name))
        row = [
            name,  # overlay
            status.value,  # status
            report.changed_files.get(name, 0),  # changed_files
            messages,  # errors
        ]
        rows.append(row)
    return rows


def _build_issue_rows(issues: List[Issue]) -> List[List[Any]]:
    return [
        [issue.severity.value, issue.stage, issue.subject or "", issue.message, issue.detail or ""]
        for issue in issues
    ]


def export_report(output_path: Path, report: RunReport) -> None:
    """Write an Excel workbook summarizing a merge run."""

    output_path.parent.mkdir(parents=True, exist_ok=True)

    workbook = Workbook()

    # Export overlays sheet
    overlays_sheet = workbook.active
    if not overlays_sheet:
        overlays_sheet = workbook.create_sheet("overlays")
    else:
        overlays_sheet.title = "overlays"
    overlays_sheet.append(["overlay", "status", "changed files", "errors"])
    for row in _build_overlay_rows(report):
        overlays_sheet.append(row)

    # Export issues sheet
    issues_sheet = workbook.create_sheet("issues")
    issues_sheet.append(["severity", "stage", "subject", "message", "detail"])
    for row in _build_issue_rows(report.issues):
        issues_sheet.append(row)

    # Export manifest sheet
    manifest_sheet = workbook.create_sheet("manifest")
    manifest_sheet.append(["path"])
    for path in report.manifest:
        manifest_sheet.append([path])

    workbook.save(output_path)
    workbook.close()


__all__ = ["print_run_summary", "export_report", "pluralize"]
