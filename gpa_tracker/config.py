"""
Application settings.

Read from the environment (prefix ``GPA_``) or a local ``.env`` file, e.g.
``GPA_STORAGE_PATH=/data/gpa.json``.
"""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_TITLE: str = "SGPA / CGPA Tracker"

    # Where the key-value store lives on disk
    STORAGE_PATH: str = "gpa_tracker_data.json"

    # Seconds of quiet before pending edits are written
    AUTOSAVE_DELAY_SECONDS: float = 1.5

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("AUTOSAVE_DELAY_SECONDS")
    @classmethod
    def _non_negative_delay(cls, v):
        if v < 0:
            raise ValueError("AUTOSAVE_DELAY_SECONDS must be >= 0")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    model_config = SettingsConfigDict(
        env_prefix="GPA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
