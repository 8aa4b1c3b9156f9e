"""
Conversion of captured audio to the format every backend expects.

Backends consume mono float32 samples in [-1.0, 1.0] at 16 kHz. The
conversion is a pure function so it can run anywhere and be repeated.
"""

from math import gcd

import numpy as np
from scipy import signal

from ..errors import UnsupportedFormat
from ..settings.config import TARGET_SAMPLE_RATE


def _normalize_rate(source_rate) -> int:
    try:
        rate = float(source_rate)
    except (TypeError, ValueError):
        raise UnsupportedFormat(f"Invalid sample rate: {source_rate!r}")

    if rate <= 0 or not rate.is_integer():
        raise UnsupportedFormat(f"Invalid sample rate: {source_rate!r}")
    return int(rate)


def to_float32(samples: np.ndarray) -> np.ndarray:
    """Scale integer PCM to [-1.0, 1.0); cast floats to float32."""
    kind = samples.dtype.kind

    if kind == "f":
        return samples.astype(np.float32, copy=True)
    if kind == "i":
        scale = float(2 ** (samples.dtype.itemsize * 8 - 1))
        return (samples.astype(np.float64) / scale).astype(np.float32)
    if kind == "u":
        offset = float(2 ** (samples.dtype.itemsize * 8 - 1))
        return ((samples.astype(np.float64) - offset) / offset).astype(np.float32)

    raise UnsupportedFormat(f"Unsupported sample type: {samples.dtype}")


def to_mono(samples: np.ndarray) -> np.ndarray:
    """Average a (frames, channels) array down to one channel."""
    if samples.ndim == 1:
        return samples
    if samples.ndim != 2:
        raise UnsupportedFormat(
            f"Expected (frames, channels) audio, got {samples.ndim} dimensions"
        )
    if samples.shape[1] == 0:
        raise UnsupportedFormat("Audio has no channels")
    if samples.shape[1] == 1:
        return samples[:, 0]
    return samples.mean(axis=1, dtype=np.float64).astype(np.float32)


def resample(samples: np.ndarray, source_rate) -> np.ndarray:
    """
    Convert audio to mono float32 at 16 kHz.

    Args:
        samples: 1-D array, or (frames, channels) array as delivered by
            sounddevice. Integer PCM is normalised.
        source_rate: Sample rate of ``samples`` in Hz.

    Returns:
        New 1-D float32 array. Already-conforming input comes back as an
        equal copy, so repeated calls are stable.

    Raises:
        UnsupportedFormat: For unsupported layouts, sample types or rates.
    """
    rate = _normalize_rate(source_rate)
    samples = np.asarray(samples)

    mono = to_mono(to_float32(samples))

    if mono.size == 0:
        return np.zeros(0, dtype=np.float32)

    if rate == TARGET_SAMPLE_RATE:
        return np.ascontiguousarray(mono, dtype=np.float32)

    divisor = gcd(rate, TARGET_SAMPLE_RATE)
    up = TARGET_SAMPLE_RATE // divisor
    down = rate // divisor

    resampled = signal.resample_poly(mono.astype(np.float64), up, down)
    return resampled.astype(np.float32)
