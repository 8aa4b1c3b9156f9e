"""
Pytest configuration.

Provides Qt object cleanup between tests, isolated config/data
directories and a synchronous executor for the session state machine.
"""
import os
from concurrent.futures import Executor, Future
from unittest.mock import patch

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtWidgets import QApplication

ENV_VARS = (
    "TALKPASTE_BACKEND",
    "TALKPASTE_API_KEY",
    "TALKPASTE_API_BASE_URL",
    "TALKPASTE_API_MODEL",
    "TALKPASTE_MODEL_PATH",
    "TALKPASTE_TIMEOUT",
    "GROQ_API_KEY",
)


@pytest.fixture(autouse=True)
def cleanup_qt_objects(qtbot, request):
    """
    Auto-cleanup fixture that runs after each test to ensure Qt objects are
    properly destroyed before the next test starts.
    """
    yield

    app = QApplication.instance()
    if app:
        app.processEvents()


@pytest.fixture
def app_dirs(tmp_path, monkeypatch):
    """Point config and data directories at tmp_path and clear env overrides."""
    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"
    config_dir.mkdir()
    data_dir.mkdir()

    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    with (
        patch(
            "talkpaste.core.settings.settings.get_config_dir",
            return_value=config_dir,
        ),
        patch(
            "talkpaste.core.settings.settings.get_data_dir",
            return_value=data_dir,
        ),
        patch(
            "talkpaste.core.settings.history.get_data_dir",
            return_value=data_dir,
        ),
        patch("talkpaste.core.settings.settings.load_dotenv"),
    ):
        yield config_dir, data_dir


class ImmediateExecutor(Executor):
    """Runs submitted work inline on the calling thread."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


@pytest.fixture
def immediate_executor():
    return ImmediateExecutor()
