from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from .errors import CatalogError, ToolError
from .file_utils import ensure_directory
from .logging_utils import log_info, log_ok
from .models import AssetRecord, ListingEntry
from .tooling import ExternalTool

LISTING_LINE_PATTERN = re.compile(
	r"^(?P<id>\d+)\s+(?P<size>\d*\.?\d+(?:\s?[KMGT]?[bB])?)\s+(?P<path>\S.*?)\s*$"
)
ARCHIVE_SUFFIX = ".pak"


def parse_listing_line(line: str) -> ListingEntry | None:
	"""Parse one ``<id> <size>[unit] <path>`` line; anything else yields ``None``."""

	match = LISTING_LINE_PATTERN.match(line)
	if not match:
		return None
	return ListingEntry(
		entry_id=int(match.group("id")),
		size=match.group("size"),
		path=match.group("path"),
	)


def parse_listing(text: str) -> List[ListingEntry]:
	entries: List[ListingEntry] = []
	for raw_line in text.splitlines():
		entry = parse_listing_line(raw_line)
		if entry is not None:
			entries.append(entry)
	return entries


def discover_archives(game_dir: Path) -> List[Path]:
	"""Return the base archives of the game, in scan order."""

	return sorted(
		path for path in game_dir.iterdir()
		if path.is_file() and path.suffix.lower() == ARCHIVE_SUFFIX
	)


def list_archive(archive: Path, cache_dir: Path, lister: ExternalTool) -> Path:
	"""Return the cached listing of ``archive``, asking the lister for it on a cache miss."""

	listing_name = f"{archive.name}.txt"
	listing_path = cache_dir / listing_name
	if listing_path.is_file():
		log_ok(f"Found {listing_name} bank.", indent=2)
		return listing_path

	log_info(f"Retrieving {archive.name} bank...", indent=2)
	ensure_directory(cache_dir)
	try:
		output = lister.run(["-l", str(archive.resolve())], cwd=cache_dir)
	except ToolError as exc:
		raise CatalogError(f"Cannot list base archive {archive}.") from exc
	if not listing_path.is_file():
		# Some builds print the listing instead of writing it next to the cwd.
		listing_path.write_text(output, encoding="utf-8")
	return listing_path


@dataclass(slots=True)
class Catalog:
	records: Dict[str, AssetRecord] = field(default_factory=dict)

	@classmethod
	def build(cls, archives: Iterable[Path], cache_dir: Path, lister: ExternalTool) -> "Catalog":
		"""Index every entry of every archive; later archives override earlier ones."""

		catalog = cls()
		for archive in archives:
			listing_path = list_archive(archive, cache_dir, lister)
			try:
				text = listing_path.read_text(encoding="utf-8", errors="ignore")
			except OSError as exc:
				raise CatalogError(f"Cannot read listing {listing_path}.") from exc
			for entry in parse_listing(text):
				catalog.add(archive, entry)
		return catalog

	def add(self, archive: Path, entry: ListingEntry) -> AssetRecord:
		record = AssetRecord(path=entry.path, archive=archive, entry_id=entry.entry_id)
		self.records[entry.path] = record
		return record

	def lookup(self, path: str) -> AssetRecord | None:
		return self.records.get(path)

	def __contains__(self, path: object) -> bool:
		return path in self.records

	def __len__(self) -> int:
		return len(self.records)


__all__ = [
	"Catalog",
	"discover_archives",
	"list_archive",
	"parse_listing",
	"parse_listing_line",
]
