"""Settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "DEMANDAS"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    db_path: Path
    static_dir: Path
    log_level: str
    max_content_mb: int

    @property
    def max_content_length(self) -> int:
        return self.max_content_mb * 1024 * 1024


def get_settings() -> Settings:
    cwd = Path(os.getcwd())
    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_env_int("PORT", 3000),
        db_path=_env_path(_k("DB_PATH"), cwd / "demandas.db"),
        static_dir=_env_path(_k("STATIC_DIR"), cwd / "static"),
        log_level=os.getenv(_k("LOG_LEVEL"), "INFO").upper(),
        max_content_mb=_env_int(_k("MAX_CONTENT_MB"), 10),
    )
