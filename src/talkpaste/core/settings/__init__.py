from .config import MAX_HISTORY_ENTRIES, TARGET_SAMPLE_RATE
from .history import HistoryEntry, JsonHistorySink, get_history_file
from .settings import (
    HotkeyConfig,
    Settings,
    get_config_dir,
    get_data_dir,
    get_models_dir,
    get_settings,
)

__all__ = [
    "MAX_HISTORY_ENTRIES",
    "TARGET_SAMPLE_RATE",
    "HistoryEntry",
    "JsonHistorySink",
    "get_history_file",
    "HotkeyConfig",
    "Settings",
    "get_config_dir",
    "get_data_dir",
    "get_models_dir",
    "get_settings",
]
