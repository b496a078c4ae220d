from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, PositiveInt, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_HASH_ALGORITHMS = {"blake3", "sha256"}
DEFAULT_QUARANTINE_DIR_NAME = "duplicate_to_be_deleted"


class ConfigError(RuntimeError):
    pass


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DUPSWEEP_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "dupsweep"
    environment: str = "production"
    api_host: str = "127.0.0.1"
    api_port: int = 8080
    log_level: str = "INFO"

    scan_root: Path | None = None
    database_path: Path = Field(default=Path("deduplicate.db"), validate_default=True)
    database_url: str | None = None

    worker_count: PositiveInt = 10
    queue_capacity: PositiveInt | None = None
    hash_algorithm: str = "sha256"
    hash_read_chunk_bytes: PositiveInt = 1024 * 1024
    quarantine_dir_name: str = DEFAULT_QUARANTINE_DIR_NAME

    dry_run: bool = False
    skip_unchanged: bool = False
    verify_originals: bool = True

    sqlite_busy_timeout_ms: PositiveInt = 30000

    default_page_size: PositiveInt = 100
    max_page_size: PositiveInt = 1000

    @field_validator("scan_root", "database_path", mode="before")
    @classmethod
    def _normalize_path(cls, value: str | Path | None) -> Path | None:
        if value is None:
            return None
        raw = str(value).strip()
        if not raw:
            return None
        if raw.startswith("~"):
            raise ValueError("Home expansion syntax is not allowed in paths")
        if "$" in raw:
            raise ValueError("Environment variable syntax is not allowed in paths")
        return Path(raw).resolve(strict=False)

    @model_validator(mode="after")
    def _validate_runtime_constraints(self) -> "Settings":
        if self.scan_root is not None and not self.scan_root.is_dir():
            raise ValueError(f"scan_root is not a directory: {self.scan_root.as_posix()}")

        if self.database_path.exists() and self.database_path.is_dir():
            raise ValueError("database_path must be a file, not a directory")

        normalized_level = self.log_level.upper().strip()
        if normalized_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        self.log_level = normalized_level

        normalized_algorithm = self.hash_algorithm.lower().strip()
        if normalized_algorithm not in SUPPORTED_HASH_ALGORITHMS:
            raise ValueError(f"hash_algorithm must be one of {sorted(SUPPORTED_HASH_ALGORITHMS)}")
        self.hash_algorithm = normalized_algorithm

        name = self.quarantine_dir_name.strip()
        if not name or name in {".", ".."} or "/" in name or "\\" in name:
            raise ValueError("quarantine_dir_name must be a single directory name")
        self.quarantine_dir_name = name

        if self.max_page_size < self.default_page_size:
            raise ValueError("max_page_size must be greater than or equal to default_page_size")

        return self

    @property
    def effective_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path.as_posix()}"

    @property
    def effective_queue_capacity(self) -> int:
        if self.queue_capacity is not None:
            return int(self.queue_capacity)
        return int(self.worker_count) * 4

    def require_scan_root(self) -> Path:
        if self.scan_root is None:
            raise ConfigError("A scan root is required (--path or DUPSWEEP_SCAN_ROOT)")
        return self.scan_root


def load_settings(**overrides: Any) -> Settings:
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
