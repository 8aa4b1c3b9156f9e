"""Tests for conversion of captured audio to 16 kHz mono float32."""

import numpy as np
import pytest

from talkpaste.core.audio.resampler import resample, to_float32, to_mono
from talkpaste.core.errors import UnsupportedFormat


class TestResample:
    def test_target_rate_is_identity(self):
        samples = np.linspace(-0.5, 0.5, 1600, dtype=np.float32)

        result = resample(samples, 16000)

        np.testing.assert_array_equal(result, samples)
        assert result.dtype == np.float32
        assert result is not samples

    def test_repeated_calls_are_stable(self):
        samples = np.random.default_rng(0).uniform(-1, 1, 4800).astype(np.float32)

        once = resample(samples, 48000)
        twice = resample(once, 16000)

        np.testing.assert_array_equal(once, twice)

    def test_downsample_48k_length(self):
        samples = np.zeros(48000, dtype=np.float32)

        result = resample(samples, 48000)

        assert len(result) == 16000
        assert result.dtype == np.float32

    def test_upsample_8k_length(self):
        samples = np.zeros(8000, dtype=np.float32)

        result = resample(samples, 8000)

        assert len(result) == 16000

    def test_44100_float_rate(self):
        samples = np.zeros(44100, dtype=np.float32)

        result = resample(samples, 44100.0)

        assert len(result) == 16000

    def test_stereo_frames_are_averaged(self):
        frames = np.array([[0.2, 0.4], [-0.2, -0.4]], dtype=np.float32)

        result = resample(frames, 16000)

        np.testing.assert_allclose(result, [0.3, -0.3], rtol=1e-6)
        assert result.ndim == 1

    def test_single_channel_frames_are_flattened(self):
        frames = np.array([[0.1], [0.2], [0.3]], dtype=np.float32)

        result = resample(frames, 16000)

        assert result.shape == (3,)

    def test_empty_input(self):
        result = resample(np.zeros((0, 1), dtype=np.float32), 48000)

        assert result.size == 0
        assert result.dtype == np.float32

    def test_int16_is_normalised(self):
        samples = np.array([0, 16384, -32768], dtype=np.int16)

        result = resample(samples, 16000)

        np.testing.assert_allclose(result, [0.0, 0.5, -1.0])

    @pytest.mark.parametrize("rate", [0, -16000, 22050.5, "fast", None])
    def test_invalid_rate(self, rate):
        with pytest.raises(UnsupportedFormat):
            resample(np.zeros(10, dtype=np.float32), rate)

    def test_three_dimensional_input(self):
        with pytest.raises(UnsupportedFormat):
            resample(np.zeros((4, 2, 2), dtype=np.float32), 16000)

    def test_complex_input(self):
        with pytest.raises(UnsupportedFormat):
            resample(np.zeros(4, dtype=np.complex64), 16000)


class TestHelpers:
    def test_uint8_is_centred(self):
        result = to_float32(np.array([128, 0], dtype=np.uint8))
        np.testing.assert_allclose(result, [0.0, -1.0])

    def test_float64_is_cast(self):
        result = to_float32(np.array([0.25], dtype=np.float64))
        assert result.dtype == np.float32

    def test_mono_passthrough(self):
        samples = np.ones(5, dtype=np.float32)
        assert to_mono(samples) is samples

    def test_zero_channels(self):
        with pytest.raises(UnsupportedFormat):
            to_mono(np.zeros((5, 0), dtype=np.float32))
