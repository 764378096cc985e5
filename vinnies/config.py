"""
Configuration management for Vinnies
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

ENV_PREFIX = "VINNIES_"


def get_default_data_path() -> str:
    """Get default directory for the library file and saved settings."""
    return str(Path.home() / ".vinnies")


def get_default_settings_file() -> str:
    return str(Path(get_default_data_path()) / "settings.env")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and the settings file"""

    # Library
    music_folder_path: str = ""
    library_file: str = str(Path(get_default_data_path()) / "library.json")

    # Matching
    bpm_tolerance: float = Field(default=3.0, ge=1.0, le=10.0)
    match_limit: int = Field(default=15, ge=1)

    # BPM analysis (aubiotrack)
    aubiotrack_path: Optional[str] = None
    analyzer_timeout_seconds: float = Field(default=120.0, gt=0)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    class Config:
        env_prefix = ENV_PREFIX
        env_file = get_default_settings_file()
        extra = "ignore"
        case_sensitive = False
        validate_assignment = True


# Fields written back by save_settings
PERSISTED_FIELDS = (
    "music_folder_path",
    "bpm_tolerance",
    "match_limit",
    "library_file",
    "aubiotrack_path",
    "analyzer_timeout_seconds",
    "log_level",
)


def _quote(value) -> str:
    """Single-quoted dotenv value; only backslash and quote are escaped in this form."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Load settings, reading a specific settings file when given."""
    if env_file is None:
        return Settings()
    return Settings(_env_file=env_file)


def save_settings(settings: Settings, env_file: Optional[str] = None) -> Path:
    """
    Persist settings as KEY=value lines, readable by load_settings.

    Returns:
        Path of the written file
    """
    path = Path(env_file or get_default_settings_file())
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = []
    for name in PERSISTED_FIELDS:
        value = getattr(settings, name)
        if value is None:
            continue
        lines.append(f"{ENV_PREFIX}{name.upper()}={_quote(value)}")

    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
