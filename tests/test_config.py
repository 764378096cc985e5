"""
Tests for settings loading and persistence.
"""

import pytest
from pydantic import ValidationError
from vinnies.config import Settings, load_settings, save_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("MUSIC_FOLDER_PATH", "BPM_TOLERANCE", "MATCH_LIMIT", "LIBRARY_FILE", "LOG_LEVEL"):
        monkeypatch.delenv(f"VINNIES_{name}", raising=False)


@pytest.mark.usefixtures("clean_env")
class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.music_folder_path == ""
        assert settings.bpm_tolerance == 3.0
        assert settings.match_limit == 15
        assert settings.aubiotrack_path is None
        assert settings.library_file.endswith("library.json")

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("VINNIES_BPM_TOLERANCE", "5")
        assert Settings(_env_file=None).bpm_tolerance == 5.0

    @pytest.mark.parametrize("tolerance", [0.5, 10.5])
    def test_tolerance_bounds(self, tolerance):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, bpm_tolerance=tolerance)

    def test_assignment_is_validated(self):
        settings = Settings(_env_file=None)
        with pytest.raises(ValidationError):
            settings.bpm_tolerance = 20


@pytest.mark.usefixtures("clean_env")
class TestSettingsFile:

    def test_save_and_load(self, tmp_path):
        env_file = tmp_path / "settings.env"
        settings = Settings(
            _env_file=None,
            music_folder_path="/Users/dj/Music/Sets 2024",
            bpm_tolerance=4.5,
            library_file=str(tmp_path / "library.json"),
        )

        written = save_settings(settings, str(env_file))
        loaded = load_settings(str(env_file))

        assert written == env_file
        assert loaded.music_folder_path == "/Users/dj/Music/Sets 2024"
        assert loaded.bpm_tolerance == 4.5
        assert loaded.library_file == str(tmp_path / "library.json")

    @pytest.mark.parametrize("folder", [
        "/Users/dj/Music/DJ's Crates",
        "D:\\Music\\Sets 'n' Edits",
        "/music/\"quoted\" #1",
    ])
    def test_special_characters_survive(self, tmp_path, folder):
        env_file = tmp_path / "settings.env"
        save_settings(Settings(_env_file=None, music_folder_path=folder), str(env_file))

        assert load_settings(str(env_file)).music_folder_path == folder

    def test_unset_values_are_not_written(self, tmp_path):
        env_file = tmp_path / "settings.env"
        save_settings(Settings(_env_file=None), str(env_file))

        assert "AUBIOTRACK_PATH" not in env_file.read_text()

    def test_creates_directory(self, tmp_path):
        env_file = tmp_path / "nested" / "settings.env"
        save_settings(Settings(_env_file=None), str(env_file))
        assert env_file.exists()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(str(tmp_path / "missing.env")).bpm_tolerance == 3.0
