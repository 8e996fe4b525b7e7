from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .errors import DiscoveryError, ToolError
from .logging_utils import log_ok


def run_command(command: Sequence[str], *, cwd: Path | None = None) -> str:
	"""Run a child process to completion and return its combined stdout/stderr."""

	try:
		completed = subprocess.run(
			list(command),
			cwd=cwd,
			stdin=subprocess.DEVNULL,
			stdout=subprocess.PIPE,
			stderr=subprocess.STDOUT,
			text=True,
			errors="replace",
			check=False,
		)
	except OSError as exc:
		raise ToolError(command, None, str(exc)) from exc
	output = (completed.stdout or "").strip()
	if completed.returncode != 0:
		raise ToolError(command, completed.returncode, output)
	return output


@dataclass(slots=True)
class ExternalTool:
	executable: Path
	args: Sequence[str] = ()

	@property
	def name(self) -> str:
		return self.executable.name

	def run(self, extra_args: Sequence[str] = (), *, cwd: Path | None = None) -> str:
		command = [str(self.executable), *self.args, *extra_args]
		return run_command(command, cwd=cwd)


@dataclass(slots=True)
class ToolConfig:
	psarc: ExternalTool
	mbincompiler: ExternalTool
	packer: ExternalTool


def resolve_executable(value: str | Path, label: str) -> Path:
	"""Locate a tool either as a file path or as a command on PATH."""

	candidate = Path(value).expanduser()
	if candidate.is_file():
		log_ok(f"Found {label} at {candidate}.")
		return candidate.resolve()
	if candidate.name == str(value):
		found = shutil.which(str(value))
		if found:
			log_ok(f"Found {label} at {found}.")
			return Path(found)
	raise DiscoveryError(f"Cannot find {label} at {value}, aborting.")


def prepare_tools(
	psarc: str | Path,
	mbincompiler: str | Path,
	psarc_packer: str | Path,
	wine: str | Path | None = None,
) -> ToolConfig:
	"""Resolve every external tool the pipeline needs, failing on the first missing one."""

	psarc_tool = ExternalTool(resolve_executable(psarc, "psarc"))
	compiler_tool = ExternalTool(resolve_executable(mbincompiler, "MBINCompiler"))
	packer_path = resolve_executable(psarc_packer, "psarc (packer)")
	if wine:
		# The packer is a foreign binary; wine takes it as its first argument.
		packer_tool = ExternalTool(resolve_executable(wine, "wine"), args=(str(packer_path),))
	else:
		packer_tool = ExternalTool(packer_path)
	return ToolConfig(psarc=psarc_tool, mbincompiler=compiler_tool, packer=packer_tool)
