from __future__ import annotations

import json
from pathlib import Path

import pytest

from compwise.config import CatalogConfig
from compwise.domain.catalog import CatalogOrigin, CatalogResult
from compwise.domain.entities import EntityRecords, SourceOutcome
from compwise.domain.model import Category, Entity, Record
from compwise.domain.sources import SourceRef
from compwise.ui import cli as cli_module
from tests.helpers.transports import sheet

LRU = "MEDIUM,LRU Cache,70,0.4,https://leetcode.com/problems/lru-cache,Design"


def test_entities_command_prints_names(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, CatalogConfig] = {}

    def fake_list(*, config: CatalogConfig) -> CatalogResult:
        captured["config"] = config
        return CatalogResult(entities=(Entity(name="Google", record_count=12),))

    monkeypatch.setattr(cli_module, "list_entities", fake_list)

    cli_module.main(["entities", "--base-url", "https://example.org/repo/"])

    assert captured["config"].base_url == "https://example.org/repo/"
    out = capsys.readouterr()
    assert out.out == "Google\t12\n"
    assert out.err == ""


def test_entities_command_warns_on_degraded_catalog(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    def fake_list(*, config: CatalogConfig) -> CatalogResult:
        return CatalogResult(entities=(Entity(name="Google"),), origin=CatalogOrigin.MINIMAL)

    monkeypatch.setattr(cli_module, "list_entities", fake_list)

    cli_module.main(["entities", "--data-dir", str(tmp_path)])

    assert "minimal fallback" in capsys.readouterr().err


def test_records_command_honours_limit(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path
) -> None:
    records = tuple(
        Record(title=f"P{index}", category=Category.EASY, link=f"https://x/{index}")
        for index in range(3)
    )
    failed = SourceOutcome(
        source=SourceRef(entity="Google", path="g/1.csv", position=0), error="denied"
    )

    def fake_load(name: str, *, config: CatalogConfig) -> EntityRecords:
        assert name == "Google"
        return EntityRecords(entity=name, records=records, outcomes=(failed,))

    monkeypatch.setattr(cli_module, "load_entity_records", fake_load)

    cli_module.main(["records", "Google", "--limit", "2", "--data-dir", str(tmp_path)])

    out = capsys.readouterr()
    assert [line.split("\t")[2] for line in out.out.splitlines()] == ["P0", "P1"]
    assert "g/1.csv: denied" in out.err


def test_negative_limit_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["records", "Google", "--limit", "-1", "--data-dir", str(tmp_path)])

    assert excinfo.value.code == 2


def test_missing_configuration_exits_with_usage_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("COMPWISE_BASE_URL", raising=False)
    monkeypatch.delenv("COMPWISE_DATA_DIR", raising=False)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["entities"])

    assert excinfo.value.code == 2


def test_pipeline_failure_exits_with_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    def failing_list(*, config: CatalogConfig) -> CatalogResult:
        raise RuntimeError("boom")

    monkeypatch.setattr(cli_module, "list_entities", failing_list)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["entities", "--data-dir", str(tmp_path)])

    assert excinfo.value.code == 1


def test_build_catalog_then_browse(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "company-wise-problems" / "Google" / "5. All.csv"
    source.parent.mkdir(parents=True)
    source.write_text(sheet(LRU), encoding="utf-8")

    cli_module.main(["build-catalog", str(tmp_path)])

    catalog_path = tmp_path / "data" / "companies.json"
    assert capsys.readouterr().out.strip() == str(catalog_path)
    assert json.loads(catalog_path.read_text(encoding="utf-8"))["totalEntities"] == 1

    cli_module.main(["entities", "--data-dir", str(tmp_path)])
    assert capsys.readouterr().out == "Google\t1\n"

    cli_module.main(["records", "Google", "--data-dir", str(tmp_path)])
    assert "LRU Cache" in capsys.readouterr().out
