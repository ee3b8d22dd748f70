"""Where the claim history lives on disk."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env

APP_DIR_NAME: Final[str] = "depmatrix"
DEFAULT_DB_FILENAME: Final[str] = "depmatrix.db"
DATA_DIR_ENV: Final[str] = "DEPMATRIX_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
SQLITE_URI_PREFIX: Final[str] = "sqlite+pysqlite:///"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory holding the SQLite claim store."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_path(self, *, ensure: bool = True) -> Path:
        data_dir = self.resolve_data_dir()
        if ensure:
            data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = os.getenv("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = os.getenv("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    override = optional_env(DATA_DIR_ENV)
    data_dir = Path(override) if override else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir.expanduser().resolve())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``$DATABASE_URI`` when set, otherwise a SQLite file in the data directory."""

    uri = optional_env(DATABASE_URI_ENV)
    if uri is None:
        path = (storage or get_storage_config()).database_path()
        uri = f"{SQLITE_URI_PREFIX}{path}"
    return DatabaseConfig(uri=uri)
