"""Settings for the Stat-Spine daily job.

All fields can be set via ``STATSPINE_*`` environment variables (e.g.
``STATSPINE_DATA_DIR=/var/lib/stats``) or a ``.env`` file. The CLI
overrides individual fields from its options.

Fields
──────
database_url        : Primary data store (series writes)
replica_url         : Read replica used for replay and counting (defaults to primary)
data_dir            : Root data directory; time series live in ``<data_dir>/mining``
graphs_dir          : Directory of rendered chart images cleaned on every run
workers             : Thread-pool size for per-product work
log_level / log_format : structlog configuration
all_products_label  : Name of the pseudo-product covering every entity
category_renames    : Old → new category names folded during domain discovery

Tags:
    settings, configuration, pydantic, environment, stat-spine
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StatSpineSettings(BaseSettings):
    """Validated configuration for one invocation of the daily job."""

    model_config = SettingsConfigDict(
        env_prefix="STATSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Data store ───────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/statspine.db")
    replica_url: str | None = Field(
        default=None,
        description="Read replica for replay and counting; falls back to database_url",
    )

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(default=Path("data"))
    graphs_dir: Path | None = Field(
        default=None,
        description="Chart image directory to tidy before collecting",
    )

    # ── Execution ────────────────────────────────────────────────
    workers: int = Field(default=1, ge=1)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="auto", description="json, console or auto")

    # ── Domain ───────────────────────────────────────────────────
    all_products_label: str = Field(default="-All-")
    category_renames: dict[str, str] = Field(default_factory=dict)

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        value = value.lower()
        if value not in {"json", "console", "auto"}:
            raise ValueError(f"unknown log format: {value}")
        return value

    # ── Derived properties ───────────────────────────────────────

    @property
    def effective_replica_url(self) -> str:
        return self.replica_url or self.database_url

    @property
    def mining_dir(self) -> Path:
        """Directory holding one time-series file per product."""
        return self.data_dir / "mining"

    @property
    def json_logs(self) -> bool | None:
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


_settings_cache: StatSpineSettings | None = None


def get_settings(*, _force_reload: bool = False) -> StatSpineSettings:
    """Load, validate and cache settings from the environment."""
    global _settings_cache
    if _settings_cache is None or _force_reload:
        _settings_cache = StatSpineSettings()
    return _settings_cache


__all__ = ["StatSpineSettings", "get_settings"]
