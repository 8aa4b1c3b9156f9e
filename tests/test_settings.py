"""Tests for Settings persistence and environment overrides."""

import json

from talkpaste.core.settings import HotkeyConfig, Settings
from talkpaste.core.settings.config import DEFAULT_API_BASE_URL, DEFAULT_LOCAL_MODEL


class TestHotkeyConfig:
    def test_default_values(self):
        hotkey = HotkeyConfig()
        assert hotkey.modifiers == ["ctrl", "alt"]
        assert hotkey.key == "space"

    def test_display_string(self):
        hotkey = HotkeyConfig(modifiers=["ctrl", "shift"], key="a")
        assert hotkey.to_display_string() == "Ctrl + Shift + A"

    def test_serialization(self):
        hotkey = HotkeyConfig(modifiers=["alt"], key="space")
        assert hotkey.model_dump() == {"modifiers": ["alt"], "key": "space"}


class TestSettings:
    def test_default_values(self):
        settings = Settings()
        assert settings.backend == "cloud"
        assert settings.api_key is None
        assert settings.api_base_url == DEFAULT_API_BASE_URL
        assert settings.request_timeout == 30.0
        assert settings.sample_rate is None
        assert settings.auto_paste is True

    def test_backend_normalised(self):
        assert Settings(backend=" Local ").backend == "local"

    def test_resolved_model_path_default(self, app_dirs):
        _, data_dir = app_dirs
        assert Settings().resolved_model_path == data_dir / "models" / DEFAULT_LOCAL_MODEL

    def test_resolved_model_path_explicit(self, tmp_path):
        settings = Settings(model_path=str(tmp_path / "m"))
        assert settings.resolved_model_path == tmp_path / "m"

    def test_save_load_cycle(self, app_dirs):
        config_dir, _ = app_dirs

        original = Settings(
            backend="local",
            sample_rate=44100,
            input_device="Test Mic",
            hotkey=HotkeyConfig(modifiers=["alt"], key="r"),
            auto_paste=False,
        )
        original.save()

        assert (config_dir / "settings.json").exists()

        loaded = Settings.load()
        assert loaded.backend == "local"
        assert loaded.sample_rate == 44100
        assert loaded.input_device == "Test Mic"
        assert loaded.hotkey.modifiers == ["alt"]
        assert loaded.hotkey.key == "r"
        assert loaded.auto_paste is False

    def test_load_nonexistent_returns_defaults(self, app_dirs):
        settings = Settings.load()
        default = Settings()

        assert settings.backend == default.backend
        assert settings.api_model == default.api_model

    def test_load_corrupted_json(self, app_dirs):
        config_dir, _ = app_dirs
        (config_dir / "settings.json").write_text("{ not json")

        settings = Settings.load()

        assert settings.backend == "cloud"

    def test_load_non_object(self, app_dirs):
        config_dir, _ = app_dirs
        (config_dir / "settings.json").write_text("[1, 2, 3]")

        assert Settings.load().backend == "cloud"

    def test_invalid_field_falls_back(self, app_dirs):
        config_dir, _ = app_dirs
        (config_dir / "settings.json").write_text(
            json.dumps({"backend": "carrier-pigeon", "channels": 2, "request_timeout": -1})
        )

        settings = Settings.load()

        assert settings.backend == "cloud"
        assert settings.channels == 2
        assert settings.request_timeout == 30.0

    def test_invalid_hotkey_falls_back(self, app_dirs):
        config_dir, _ = app_dirs
        (config_dir / "settings.json").write_text(
            json.dumps({"hotkey": {"modifiers": [], "key": "r"}})
        )

        assert Settings.load().hotkey == HotkeyConfig()

    def test_unknown_keys_ignored(self, app_dirs):
        config_dir, _ = app_dirs
        (config_dir / "settings.json").write_text(json.dumps({"theme": "dark"}))

        assert not hasattr(Settings.load(), "theme")


class TestEnvironmentOverrides:
    def test_env_overrides_file(self, app_dirs, monkeypatch):
        config_dir, _ = app_dirs
        (config_dir / "settings.json").write_text(json.dumps({"backend": "cloud"}))
        monkeypatch.setenv("TALKPASTE_BACKEND", "local")
        monkeypatch.setenv("TALKPASTE_MODEL_PATH", "/opt/models/whisper")
        monkeypatch.setenv("TALKPASTE_TIMEOUT", "12.5")

        settings = Settings.load()

        assert settings.backend == "local"
        assert settings.model_path == "/opt/models/whisper"
        assert settings.request_timeout == 12.5

    def test_api_key(self, app_dirs, monkeypatch):
        monkeypatch.setenv("TALKPASTE_API_KEY", "tp-key")
        monkeypatch.setenv("GROQ_API_KEY", "groq-key")

        assert Settings.load().api_key == "tp-key"

    def test_groq_key_fallback(self, app_dirs, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "groq-key")

        assert Settings.load().api_key == "groq-key"

    def test_invalid_env_value_falls_back(self, app_dirs, monkeypatch):
        monkeypatch.setenv("TALKPASTE_TIMEOUT", "soon")

        assert Settings.load().request_timeout == 30.0
