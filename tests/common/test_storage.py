from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from compwise.config import storage


def test_cache_dir_prefers_explicit_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    custom = tmp_path / "custom-cache"
    monkeypatch.setenv("COMPWISE_CACHE_DIR", str(custom))

    config = storage.get_storage_config()

    assert config.cache_dir == custom


def test_cache_dir_defaults_to_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("COMPWISE_CACHE_DIR", raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))

    config = storage.get_storage_config()

    assert config.cache_dir == tmp_path / storage.APP_DIR_NAME


def test_http_cache_path_creates_directory(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("COMPWISE_CACHE_DIR", str(tmp_path / "cache"))

    path = storage.get_storage_config().http_cache_path()

    assert path == (tmp_path / "cache" / storage.HTTP_CACHE_FILENAME).resolve()
    assert path.parent.is_dir()
