"""Tests for marketplace settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from kheticulture.config import Settings, get_settings


@pytest.fixture(autouse=True)
def no_dotenv(tmp_path, monkeypatch):
    """Run from an empty directory so a stray .env cannot leak in."""
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for Settings defaults and environment overrides."""

    def test_defaults(self, isolated_data_dir):
        settings = Settings()

        assert settings.data_dir == isolated_data_dir
        assert settings.db_path is None
        assert settings.reapply_cooldown_hours == 24
        assert settings.max_wage == 100_000
        assert settings.log_level == "INFO"

    def test_database_path_defaults_under_data_dir(self, isolated_data_dir):
        assert Settings().database_path == isolated_data_dir / "marketplace.db"

    def test_explicit_db_path_wins(self, tmp_path):
        settings = Settings(db_path=tmp_path / "elsewhere.db")
        assert settings.database_path == tmp_path / "elsewhere.db"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("KHETICULTURE_REAPPLY_COOLDOWN_HOURS", "6")
        monkeypatch.setenv("KHETICULTURE_MAX_WAGE", "2500")
        monkeypatch.setenv("KHETICULTURE_DB_PATH", "/tmp/market.db")

        settings = Settings()

        assert settings.reapply_cooldown_hours == 6
        assert settings.max_wage == 2500.0
        assert settings.database_path == Path("/tmp/market.db")

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("KHETICULTURE_LOG_LEVEL", " debug ")
        assert Settings().log_level == "DEBUG"

    def test_env_file_is_read(self, tmp_path):
        (tmp_path / ".env").write_text("KHETICULTURE_REAPPLY_COOLDOWN_HOURS=12\n")
        assert Settings().reapply_cooldown_hours == 12

    @pytest.mark.parametrize(
        "field, value",
        [("reapply_cooldown_hours", -1), ("max_wage", 0)],
    )
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_cache_clear_rereads_environment(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("KHETICULTURE_REAPPLY_COOLDOWN_HOURS", "3")
        get_settings.cache_clear()

        second = get_settings()

        assert second is not first
        assert second.reapply_cooldown_hours == 3
