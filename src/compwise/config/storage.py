"""Local storage locations."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "compwise"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    cache_dir: Path
    http_cache_filename: str = HTTP_CACHE_FILENAME

    def ensure_cache_dir(self) -> Path:
        cache_dir = self.cache_dir.expanduser().resolve()
        cache_dir.mkdir(parents=True, exist_ok=True)
        return cache_dir

    def http_cache_path(self) -> Path:
        return self.ensure_cache_dir() / self.http_cache_filename


def _default_cache_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_CACHE_HOME")
        base_path = Path(base) if base else (Path.home() / ".cache")
    return base_path / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("COMPWISE_CACHE_DIR")
    cache_dir = Path(env_dir) if env_dir else _default_cache_dir()
    return StorageConfig(cache_dir=cache_dir)
