"""Tests for the settings layer."""

from pathlib import Path

from config.settings import Settings


class TestSettings:

    def test_defaults_under_project_root(self, tmp_path):
        settings = Settings(project_root=tmp_path)
        assert settings.credentials_path == tmp_path / "shops" / "credentials"
        assert settings.ignore_file_path == tmp_path / ".gitignore"
        assert settings.rotation_age_days == 180
        assert settings.check_git_history is True

    def test_absolute_paths_are_kept(self, tmp_path):
        elsewhere = tmp_path / "vault"
        settings = Settings(project_root=tmp_path / "project", credentials_dir=elsewhere)
        assert settings.credentials_path == elsewhere

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MULTISHOP_PROJECT_ROOT", str(tmp_path))
        monkeypatch.setenv("MULTISHOP_ROTATION_AGE_DAYS", "30")
        monkeypatch.setenv("MULTISHOP_LOG_LEVEL", "DEBUG")
        settings = Settings()
        assert settings.project_root == Path(tmp_path)
        assert settings.rotation_age_days == 30
        assert settings.log_level == "DEBUG"
