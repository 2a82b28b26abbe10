"""Tests for statspine.core.settings."""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from statspine.core.settings import StatSpineSettings, get_settings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """No stray STATSPINE_* variables or .env file."""
    for key in list(os.environ):
        if key.startswith("STATSPINE_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_defaults(self):
        settings = StatSpineSettings()
        assert settings.database_url == "sqlite:///data/statspine.db"
        assert settings.workers == 1
        assert settings.all_products_label == "-All-"
        assert settings.category_renames == {}

    def test_replica_falls_back_to_primary(self):
        settings = StatSpineSettings(database_url="sqlite:///a.db")
        assert settings.effective_replica_url == "sqlite:///a.db"
        settings = StatSpineSettings(database_url="sqlite:///a.db", replica_url="sqlite:///b.db")
        assert settings.effective_replica_url == "sqlite:///b.db"

    def test_mining_dir_under_data_dir(self):
        assert StatSpineSettings(data_dir=Path("/srv/stats")).mining_dir == Path(
            "/srv/stats/mining"
        )


class TestEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("STATSPINE_WORKERS", "4")
        monkeypatch.setenv("STATSPINE_DATA_DIR", "/var/lib/stats")
        settings = StatSpineSettings()
        assert settings.workers == 4
        assert settings.data_dir == Path("/var/lib/stats")

    def test_renames_from_json(self, monkeypatch):
        monkeypatch.setenv("STATSPINE_CATEGORY_RENAMES", '{"REOPENED": "ASSIGNED"}')
        assert StatSpineSettings().category_renames == {"REOPENED": "ASSIGNED"}

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("STATSPINE_ALL_PRODUCTS_LABEL=__all__\n")
        assert StatSpineSettings().all_products_label == "__all__"


class TestValidation:
    def test_log_level_is_upper_cased(self):
        assert StatSpineSettings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            StatSpineSettings(log_level="chatty")

    def test_workers_must_be_positive(self):
        with pytest.raises(ValidationError):
            StatSpineSettings(workers=0)

    @pytest.mark.parametrize(("fmt", "expected"), [("auto", None), ("json", True), ("console", False)])
    def test_json_logs(self, fmt, expected):
        assert StatSpineSettings(log_format=fmt).json_logs is expected


class TestGetSettings:
    def test_cached_until_forced(self, monkeypatch):
        first = get_settings(_force_reload=True)
        assert get_settings() is first
        monkeypatch.setenv("STATSPINE_WORKERS", "3")
        assert get_settings().workers == first.workers
        assert get_settings(_force_reload=True).workers == 3
