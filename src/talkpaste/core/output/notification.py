import numpy as np
import sounddevice as sd

from ...utils.logger import get_logger

logger = get_logger(__name__)

NOTIFICATION_RATE = 22050


def make_chime(duration: float = 0.12, frequency: float = 880.0) -> np.ndarray:
    t = np.linspace(0, duration, int(NOTIFICATION_RATE * duration), endpoint=False)
    envelope = np.exp(-t * 25.0)
    return (0.2 * np.sin(2 * np.pi * frequency * t) * envelope).astype(np.float32)


def play_notification() -> None:
    """Play a short completion chime without blocking."""
    try:
        sd.play(make_chime(), NOTIFICATION_RATE)
    except sd.PortAudioError as e:
        logger.debug(f"Notification sound unavailable: {e}")
