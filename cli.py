from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from nmsmerger import export_report, load_program_config, print_run_summary, run_pipeline
from nmsmerger.logging_utils import log_info


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Merge every mod .pak found in the mods folder into a single archive. "
            "Mods that conflict with an already merged mod are left out and reported."
        )
    )
    parser.add_argument(
        "--config-path",
        type=Path,
        default=Path("config.toml"),
        help="Path to the program configuration TOML file.",
    )
    parser.add_argument(
        "--export-path",
        type=Path,
        default=Path(""),
        help="Path to save the run report Excel file.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    config = load_program_config(args.config_path.expanduser())

    report = run_pipeline(config)
    print_run_summary(report)

    export_path = args.export_path
    if not export_path == Path(""):
        if export_path.suffix.lower() != ".xlsx":
            export_path = export_path / "merge_report.xlsx"
        export_report(export_path, report)
        log_info(f"Report saved to {export_path}")


if __name__ == "__main__":
    main()
