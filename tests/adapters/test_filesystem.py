from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from compwise.adapters.filesystem import (
    LocalDocumentTransport,
    build_catalog_document,
    write_catalog_document,
)
from compwise.domain.catalog import decode_catalog
from tests.helpers.transports import sheet

TWO_SUM = "EASY,Two Sum,90,0.5,https://leetcode.com/problems/two-sum,Array"
LRU = "MEDIUM,LRU Cache,70,0.4,https://leetcode.com/problems/lru-cache,Design"
MEDIAN = "HARD,Median of Two Sorted Arrays,50,0.3,https://leetcode.com/problems/median,Array"


def _write(root: Path, relative: str, content: str) -> None:
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    _write(tmp_path, "company-wise-problems/Google/1. Thirty Days.csv", sheet(TWO_SUM))
    _write(tmp_path, "company-wise-problems/Google/5. All.csv", sheet(TWO_SUM, LRU, MEDIAN))
    _write(tmp_path, "company-wise-problems/amazon/5. All.csv", sheet(LRU))
    _write(tmp_path, "company-wise-problems/Empty/notes.txt", "nothing here")
    _write(tmp_path, "company-wise-problems/.git/5. All.csv", sheet(LRU))
    _write(tmp_path, "company-wise-problems/Broken/5. All.csv", "category,title,link\n")
    _write(tmp_path, "assets/company-logos/google.svg", "<svg/>")
    _write(tmp_path, "secret.txt", "outside")
    return tmp_path


def test_local_transport_reads_documents(data_dir: Path) -> None:
    transport = LocalDocumentTransport(data_dir)

    response = asyncio.run(transport.fetch("company-wise-problems/amazon/5. All.csv"))

    assert response.ok
    assert "LRU Cache" in response.body


def test_local_transport_reports_missing_documents(data_dir: Path) -> None:
    transport = LocalDocumentTransport(data_dir)

    missing = asyncio.run(transport.fetch("company-wise-problems/Nobody/5. All.csv"))

    assert missing.status_code == 404
    assert asyncio.run(transport.fetch("company-wise-problems")).status_code == 404


def test_local_transport_forbids_escaping_root(data_dir: Path) -> None:
    transport = LocalDocumentTransport(data_dir / "company-wise-problems")

    response = asyncio.run(transport.fetch("../secret.txt"))

    assert response.status_code == 403
    assert asyncio.run(transport.exists("../secret.txt")) is False


def test_local_transport_exists_only_for_files(data_dir: Path) -> None:
    transport = LocalDocumentTransport(data_dir)

    assert asyncio.run(transport.exists("assets/company-logos/google.svg")) is True
    assert asyncio.run(transport.exists("assets/company-logos")) is False


def test_build_catalog_document(data_dir: Path) -> None:
    now = datetime(2024, 5, 1, tzinfo=UTC)

    document = build_catalog_document(data_dir, now=now)

    entities = document["entities"]
    assert isinstance(entities, list)
    assert [entity["name"] for entity in entities] == ["amazon", "Broken", "Google"]
    google = entities[2]
    assert google["recordCount"] == 3
    assert google["csvFiles"] == 2
    assert google["iconRef"] == "assets/company-logos/google.svg"
    assert google["categories"] == {"EASY": 1, "HARD": 1, "MEDIUM": 1}
    assert google["lastUpdated"] == now.isoformat()
    broken = entities[1]
    assert broken["recordCount"] == 0
    assert broken["hasProblems"] is False
    assert broken["iconRef"] == "assets/icons/company-placeholder.svg"
    assert document["totalEntities"] == 3
    assert document["totalRecords"] == 4


def test_build_catalog_requires_source_dir(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        build_catalog_document(tmp_path)


def test_written_catalog_decodes(data_dir: Path, tmp_path: Path) -> None:
    output = write_catalog_document(build_catalog_document(data_dir), tmp_path / "out" / "c.json")

    entities, errors = decode_catalog(output.read_text(encoding="utf-8"))

    assert [entity.name for entity in entities] == ["amazon", "Broken", "Google"]
    assert entities[2].record_count == 3
    assert entities[2].extras["csvFiles"] == 2
    assert errors == []
    assert json.loads(output.read_text(encoding="utf-8"))["totalEntities"] == 3
