from .buffer import SessionBuffer
from .capture import AudioDevice, CaptureSource
from .resampler import resample, to_mono

__all__ = [
    "SessionBuffer",
    "AudioDevice",
    "CaptureSource",
    "resample",
    "to_mono",
]
