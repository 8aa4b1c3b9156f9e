"""
Centralized application configuration.

Edit the variables below to configure development settings.
"""

import logging

# =============================================================================
# DEVELOPMENT SETTINGS - Edit these for local development
# =============================================================================
LOG_LEVEL = "DEBUG"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_TO_CONSOLE = True  # Set to True to output logs to terminal
LOG_TO_FILE = True
# =============================================================================

# =============================================================================
# HISTORY SETTINGS
# =============================================================================
MAX_HISTORY_ENTRIES = 20  # Number of transcription history records to keep
# =============================================================================

# =============================================================================
# AUDIO / TRANSCRIPTION CONSTANTS
# =============================================================================
TARGET_SAMPLE_RATE = 16000  # Every backend receives mono float32 at this rate
DEFAULT_API_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_API_MODEL = "whisper-large-v3-turbo"
DEFAULT_LOCAL_MODEL = "sherpa-onnx-whisper-base.en"
# =============================================================================


def get_log_level() -> int:
    """Get the logging level as an integer."""
    return getattr(logging, LOG_LEVEL.upper(), logging.INFO)
