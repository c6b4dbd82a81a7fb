"""Serving and indexing a catalog laid out on local disk."""

from __future__ import annotations

import asyncio
import json
from collections import Counter
from datetime import UTC, datetime
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from compwise.config.catalog import DEFAULT_ICON_DIR, DEFAULT_PLACEHOLDER_ICON
from compwise.domain.entities import merge_records
from compwise.domain.errors import DocumentParseError
from compwise.domain.icons import icon_name_variants
from compwise.domain.parsing import RecordParser
from compwise.domain.ports.fetching import DocumentTransport, FetchResponse
from compwise.domain.sources import SourceLayout

if TYPE_CHECKING:
    from compwise.domain.model import Record

log = getLogger(__name__)


class LocalDocumentTransport:
    """Reads documents below ``root``; paths escaping the root are forbidden."""

    def __init__(self, root: Path, *, encoding: str = "utf-8") -> None:
        self.root = root.expanduser().resolve()
        self.encoding = encoding

    def _target(self, path: str) -> Path | None:
        candidate = (self.root / path).resolve()
        if not candidate.is_relative_to(self.root):
            return None
        return candidate

    def _read(self, path: str) -> FetchResponse:
        target = self._target(path)
        if target is None:
            return FetchResponse(path=path, status_code=403)
        try:
            body = target.read_text(encoding=self.encoding, errors="replace")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return FetchResponse(path=path, status_code=404)
        except PermissionError:
            return FetchResponse(path=path, status_code=403)
        return FetchResponse(path=path, status_code=200, body=body)

    def _is_file(self, path: str) -> bool:
        target = self._target(path)
        return target is not None and target.is_file()

    async def fetch(self, path: str) -> FetchResponse:
        return await asyncio.to_thread(self._read, path)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._is_file, path)


def _detect_icon(root: Path, name: str, *, icon_dir: str, placeholder: str) -> str:
    for variant in icon_name_variants(name):
        relative = f"{icon_dir}/{variant}.svg"
        if (root / relative).is_file():
            return relative
    return placeholder


def _read_entity_records(
    folder: Path,
    *,
    layout: SourceLayout,
    parser: RecordParser,
) -> tuple[list[str], tuple[Record, ...]]:
    present: list[str] = []
    batches: list[tuple[Record, ...]] = []
    for suffix in layout.suffixes:
        path = folder / suffix
        if not path.is_file():
            continue
        present.append(suffix)
        try:
            result = parser.parse(path.read_text(encoding="utf-8", errors="replace"))
        except DocumentParseError as exc:
            log.warning("Could not parse %s: %s", path, exc)
            continue
        batches.append(result.records)
    records, _ = merge_records(batches)
    return present, records


def build_catalog_document(
    root: Path,
    *,
    layout: SourceLayout | None = None,
    parser: RecordParser | None = None,
    icon_dir: str = DEFAULT_ICON_DIR,
    placeholder_icon: str = DEFAULT_PLACEHOLDER_ICON,
    now: datetime | None = None,
) -> dict[str, object]:
    """Index every entity folder below ``root`` into a catalog document.

    Record counts are unique records across an entity's source documents.
    Folders without any source document are skipped.
    """

    active_layout = layout or SourceLayout()
    active_parser = parser or RecordParser()
    timestamp = (now or datetime.now(UTC)).isoformat()
    source_dir = root / active_layout.root
    if not source_dir.is_dir():
        raise FileNotFoundError(f"Source directory does not exist: {source_dir}")

    entities: list[dict[str, object]] = []
    total_records = 0
    folders = sorted(
        (p for p in source_dir.iterdir() if p.is_dir() and not p.name.startswith(".")),
        key=lambda p: p.name.casefold(),
    )
    for folder in folders:
        present, records = _read_entity_records(folder, layout=active_layout, parser=active_parser)
        if not present:
            log.debug("Skipping %s: no source documents", folder.name)
            continue
        total_records += len(records)
        categories = Counter(record.category.value for record in records)
        entities.append(
            {
                "name": folder.name,
                "recordCount": len(records),
                "iconRef": _detect_icon(
                    root, folder.name, icon_dir=icon_dir, placeholder=placeholder_icon
                ),
                "csvFiles": len(present),
                "hasProblems": bool(records),
                "categories": dict(sorted(categories.items())),
                "lastUpdated": timestamp,
            }
        )
        log.info("Indexed %s: %d records from %d files", folder.name, len(records), len(present))

    return {
        "generated": timestamp,
        "totalEntities": len(entities),
        "totalRecords": total_records,
        "entities": entities,
    }


def write_catalog_document(document: dict[str, object], output: Path) -> Path:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return output


if TYPE_CHECKING:
    _transport_check: DocumentTransport = LocalDocumentTransport(Path())
