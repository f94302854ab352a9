"""Configuration loading from environment variables and unistore.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_DATA_FILE = Path("data") / "university.json"
_CONFIG_FILENAME = "unistore.toml"


@dataclass
class StoreConfig:
    """Top-level unistore configuration."""

    data_file: Path = _DEFAULT_DATA_FILE
    backup_dir: Path | None = None  # None → <data_file dir>/backups
    backup_keep: int = 0  # 0 → keep every backup
    log_level: str = "INFO"

    @property
    def resolved_backup_dir(self) -> Path:
        return self.backup_dir or self.data_file.parent / "backups"


def load_config(config_path: Path | None = None) -> StoreConfig:
    """Load configuration from environment variables and optional unistore.toml.

    Priority: environment variables > unistore.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.unistore/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".unistore" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    store_data = file_data.get("store", {})

    backup_dir = os.getenv("UNISTORE_BACKUP_DIR", store_data.get("backup_dir"))
    return StoreConfig(
        data_file=Path(
            os.getenv("UNISTORE_DATA_FILE", store_data.get("data_file", str(_DEFAULT_DATA_FILE)))
        ),
        backup_dir=Path(backup_dir) if backup_dir else None,
        backup_keep=int(os.getenv("UNISTORE_BACKUP_KEEP", store_data.get("backup_keep", 0))),
        log_level=os.getenv("UNISTORE_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
