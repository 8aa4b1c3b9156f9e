import queue
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np
import sounddevice as sd

from ...utils.logger import get_logger
from ..errors import CaptureOverflow, DeviceUnavailable

logger = get_logger(__name__)

FrameSink = Callable[[np.ndarray], None]

# Roughly 20 seconds of callback blocks at typical driver block sizes
DEFAULT_QUEUE_SIZE = 1024


@dataclass
class AudioDevice:
    name: str
    index: int
    channels: int
    default_sample_rate: float


class CaptureSource:
    """
    Microphone capture that pushes frames to a sink while active.

    The PortAudio callback only copies each block into a bounded queue; a
    pump thread hands the blocks to the sink, so slow consumers never
    stall the driver. The device is open strictly between ``start()`` and
    ``stop()``/``abort()``.
    """

    def __init__(
        self,
        sample_rate: Optional[int] = None,
        channels: int = 1,
        device: Optional[str] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        on_audio_level: Optional[Callable[[float], None]] = None,
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device
        self.on_audio_level = on_audio_level

        self._queue_size = queue_size
        self._queue: "queue.Queue[np.ndarray]" = queue.Queue(maxsize=queue_size)
        self._stream: Optional[sd.InputStream] = None
        self._pump: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._sink: Optional[FrameSink] = None
        self._error: Optional[CaptureOverflow] = None
        self._frames_captured = 0
        self._active_sample_rate: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self._stream is not None

    @property
    def active_sample_rate(self) -> Optional[float]:
        """Rate of the stream currently (or last) opened."""
        return self._active_sample_rate

    def start(self, on_frame: FrameSink) -> None:
        with self._lock:
            if self._stream is not None:
                raise DeviceUnavailable("Microphone is already in use by this session")

            device_index, rate = self._resolve_device()

            self._queue = queue.Queue(maxsize=self._queue_size)
            self._stop_event.clear()
            self._sink = on_frame
            self._error = None
            self._frames_captured = 0
            self._active_sample_rate = rate

            stream = None
            try:
                stream = sd.InputStream(
                    samplerate=rate,
                    channels=self.channels,
                    device=device_index,
                    dtype="float32",
                    callback=self._audio_callback,
                )
                self._stream = stream
                self._start_pump()
                stream.start()
            except (sd.PortAudioError, ValueError, OSError) as e:
                self._close_stream()
                self._stop_pump()
                raise DeviceUnavailable(f"Audio device error: {e}") from e

            logger.info(
                f"Capture started: device={self.device or 'default'}, "
                f"rate={rate:.0f}Hz, channels={self.channels}"
            )

    def stop(self) -> float:
        """
        Close the device and flush pending frames to the sink.

        Returns:
            Captured duration in seconds.

        Raises:
            CaptureOverflow: If frames were lost or the sink refused them.
        """
        with self._lock:
            if self._stream is None:
                return 0.0

            try:
                self._close_stream()
            finally:
                self._stop_pump()

            duration = 0.0
            if self._active_sample_rate:
                duration = self._frames_captured / self._active_sample_rate

            logger.info(f"Capture stopped: {duration:.2f}s")

            if self._error is not None:
                raise self._error

            return duration

    def abort(self) -> None:
        """Close the device, dropping anything still queued."""
        with self._lock:
            if self._stream is None:
                return
            self._stop_event.set()
            try:
                self._close_stream()
            finally:
                self._drain_queue()
                self._stop_pump()
            logger.info("Capture aborted")

    def _audio_callback(self, indata: np.ndarray, frames: int, time, status) -> None:
        if status:
            logger.warning(f"Audio input status: {status}")

        if self._error is not None:
            return

        try:
            self._queue.put_nowait(indata.copy())
        except queue.Full:
            self._error = CaptureOverflow("Audio frames arrived faster than they were stored")
            return

        self._frames_captured += frames

        if self.on_audio_level is not None:
            level = float(np.abs(indata).mean())
            self.on_audio_level(min(1.0, level * 10))

    def _start_pump(self) -> None:
        self._pump = threading.Thread(
            target=self._pump_frames, name="capture-pump", daemon=True
        )
        self._pump.start()

    def _stop_pump(self) -> None:
        self._stop_event.set()
        if self._pump is not None:
            self._pump.join()
            self._pump = None
        self._sink = None

    def _pump_frames(self) -> None:
        while True:
            try:
                frame = self._queue.get(timeout=0.05)
            except queue.Empty:
                if self._stop_event.is_set():
                    return
                continue

            if self._error is not None or self._sink is None:
                continue

            try:
                self._sink(frame)
            except CaptureOverflow as e:
                logger.error(f"Capture overflow: {e}")
                self._error = e

    def _drain_queue(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        except sd.PortAudioError as e:
            logger.warning(f"Error while stopping audio stream: {e}")

        try:
            stream.close()
        except sd.PortAudioError as e:
            logger.warning(f"Error while closing audio stream: {e}")

    def resolve_sample_rate(self) -> float:
        """Rate the next ``start()`` will open the device at."""
        return self._resolve_device()[1]

    def _resolve_device(self) -> Tuple[Optional[int], float]:
        try:
            device_index = self._get_device_index()
            return device_index, self._resolve_sample_rate(device_index)
        except sd.PortAudioError as e:
            raise DeviceUnavailable(f"No input device available: {e}") from e

    def _resolve_sample_rate(self, device_index: Optional[int]) -> float:
        if self.sample_rate:
            return float(self.sample_rate)

        try:
            info = sd.query_devices(device_index, "input")
        except (sd.PortAudioError, ValueError) as e:
            raise DeviceUnavailable(f"No input device available: {e}") from e

        return float(info["default_samplerate"])

    def _get_device_index(self) -> Optional[int]:
        if self.device is None:
            return None

        for device in self.list_devices():
            if device.name == self.device:
                return device.index

        raise DeviceUnavailable(f"Input device not found: {self.device}")

    @staticmethod
    def list_devices() -> List[AudioDevice]:
        devices = []

        for i, device in enumerate(sd.query_devices()):
            if device["max_input_channels"] > 0:
                devices.append(
                    AudioDevice(
                        name=device["name"],
                        index=i,
                        channels=device["max_input_channels"],
                        default_sample_rate=device["default_samplerate"],
                    )
                )

        return devices
