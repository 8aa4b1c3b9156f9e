"""
Settings management with JSON persistence.

Handles loading, saving, and validating application settings.
Uses platformdirs for cross-platform directory resolution; environment
variables (and a .env file, when present) override the stored values.
"""

import json
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from platformdirs import user_config_path, user_data_path
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...utils.logger import get_logger
from .config import DEFAULT_API_BASE_URL, DEFAULT_API_MODEL, DEFAULT_LOCAL_MODEL

logger = get_logger(__name__)

APP_NAME = "talkpaste"

# Environment variable -> settings field
ENV_OVERRIDES = {
    "TALKPASTE_BACKEND": "backend",
    "TALKPASTE_API_KEY": "api_key",
    "TALKPASTE_API_BASE_URL": "api_base_url",
    "TALKPASTE_API_MODEL": "api_model",
    "TALKPASTE_MODEL_PATH": "model_path",
    "TALKPASTE_TIMEOUT": "request_timeout",
}


def get_config_dir() -> Path:
    return user_config_path(APP_NAME, ensure_exists=True)


def get_data_dir() -> Path:
    return user_data_path(APP_NAME, ensure_exists=True)


def get_models_dir() -> Path:
    return get_data_dir() / "models"


class HotkeyConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    modifiers: list[str] = Field(default_factory=lambda: ["ctrl", "alt"])
    key: str = "space"

    @field_validator("modifiers")
    @classmethod
    def modifiers_not_empty(cls, v):
        if not v or not all(isinstance(m, str) and m.strip() for m in v):
            raise ValueError("modifiers must be a non-empty list of non-empty strings")
        return v

    @field_validator("key")
    @classmethod
    def key_not_empty(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("key must be a non-empty string")
        return v

    def to_display_string(self) -> str:
        parts = [mod.capitalize() for mod in self.modifiers]
        parts.append(self.key.capitalize())
        return " + ".join(parts)


class Settings(BaseModel):
    model_config = ConfigDict(validate_assignment=False)

    backend: Literal["local", "cloud"] = "cloud"

    api_key: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    api_model: str = DEFAULT_API_MODEL
    request_timeout: float = Field(default=30.0, gt=0)

    model_path: Optional[str] = None
    num_threads: int = Field(default=4, ge=1, le=64)

    input_device: Optional[str] = None
    sample_rate: Optional[int] = Field(default=None, ge=8000, le=192000)
    channels: int = Field(default=1, ge=1, le=8)
    max_recording_seconds: float = Field(default=300.0, gt=0)

    auto_paste: bool = True
    notify_sound: bool = False

    hotkey: HotkeyConfig = Field(default_factory=HotkeyConfig)

    @field_validator("backend", mode="before")
    @classmethod
    def normalize_backend(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("api_base_url", "api_model")
    @classmethod
    def not_empty(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("must be a non-empty string")
        return v.strip()

    @property
    def resolved_model_path(self) -> Path:
        if self.model_path:
            return Path(self.model_path).expanduser()
        return get_models_dir() / DEFAULT_LOCAL_MODEL

    @classmethod
    def load(cls) -> "Settings":
        config_file = get_config_dir() / "settings.json"

        data: dict = {}
        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise TypeError("settings.json must contain an object")
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning(
                    f"Could not load settings: {e}. Using defaults.", exc_info=True
                )
                data = {}

        # Filter to valid keys only
        valid_keys = cls.model_fields.keys()
        filtered_data = {k: v for k, v in data.items() if k in valid_keys}

        if "hotkey" in filtered_data and isinstance(filtered_data["hotkey"], dict):
            try:
                filtered_data["hotkey"] = HotkeyConfig.model_validate(
                    filtered_data["hotkey"]
                )
            except Exception:
                logger.warning("Invalid hotkey configuration, resetting to default")
                filtered_data["hotkey"] = HotkeyConfig()

        filtered_data.update(cls._read_env_overrides())

        return cls._load_with_fallbacks(filtered_data)

    @staticmethod
    def _read_env_overrides() -> dict:
        load_dotenv()

        overrides = {}
        for env_name, field_name in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                overrides[field_name] = value

        if "api_key" not in overrides and os.environ.get("GROQ_API_KEY"):
            overrides["api_key"] = os.environ["GROQ_API_KEY"]

        if overrides:
            logger.debug(
                f"Environment overrides: {', '.join(sorted(overrides.keys()))}"
            )
        return overrides

    @classmethod
    def _load_with_fallbacks(cls, data: dict) -> "Settings":
        """Load settings with field-level fallback to defaults on validation errors."""
        defaults = cls()
        result_data = {}

        for field_name in cls.model_fields:
            if field_name not in data:
                result_data[field_name] = getattr(defaults, field_name)
                continue

            if field_name == "hotkey" and isinstance(data[field_name], HotkeyConfig):
                result_data[field_name] = data[field_name]
                continue

            try:
                validated = cls.model_validate(
                    {**defaults.model_dump(), field_name: data[field_name]}
                )
                result_data[field_name] = getattr(validated, field_name)
            except Exception:
                default_val = getattr(defaults, field_name)
                logger.warning(
                    f"Invalid {field_name} {data[field_name]!r}, resetting to {default_val}"
                )
                result_data[field_name] = default_val

        return cls.model_construct(**result_data)

    def save(self) -> None:
        config_file = get_config_dir() / "settings.json"

        data = self.model_dump()

        with open(config_file, "w") as f:
            json.dump(data, f, indent=2)


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.load()
    return _settings_instance
