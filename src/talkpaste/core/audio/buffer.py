import threading
from typing import List, Optional

import numpy as np

from ..errors import BufferReleasedError, CaptureOverflow


class SessionBuffer:
    """
    In-memory frame store for a single recording session.

    Frames are appended by the capture pump thread and drained once by the
    session state machine. Nothing here ever touches disk. After
    ``drain()`` or ``discard()`` the buffer is released and rejects further
    use.
    """

    def __init__(self, max_samples: Optional[int] = None):
        self.max_samples = max_samples
        self._frames: List[np.ndarray] = []
        self._sample_count = 0
        self._released = False
        self._lock = threading.Lock()

    @property
    def frame_count(self) -> int:
        with self._lock:
            return len(self._frames)

    @property
    def sample_count(self) -> int:
        with self._lock:
            return self._sample_count

    @property
    def released(self) -> bool:
        return self._released

    def append(self, frame: np.ndarray) -> None:
        with self._lock:
            if self._released:
                raise CaptureOverflow("Recording buffer is closed")

            frame_len = len(frame)
            if (
                self.max_samples is not None
                and self._sample_count + frame_len > self.max_samples
            ):
                raise CaptureOverflow(
                    f"Recording exceeded the maximum of {self.max_samples} samples"
                )

            try:
                self._frames.append(frame)
            except MemoryError as e:
                raise CaptureOverflow("Out of memory while recording") from e
            self._sample_count += frame_len

    def drain(self) -> np.ndarray:
        with self._lock:
            if self._released:
                raise BufferReleasedError("Session buffer was already drained")

            frames = self._frames
            self._release_locked()

        if not frames:
            return np.zeros(0, dtype=np.float32)

        try:
            return np.concatenate(frames, axis=0)
        except MemoryError as e:
            raise CaptureOverflow("Out of memory while assembling recording") from e
        finally:
            frames.clear()

    def discard(self) -> None:
        with self._lock:
            if self._released:
                return
            self._frames.clear()
            self._release_locked()

    def _release_locked(self) -> None:
        self._frames = []
        self._sample_count = 0
        self._released = True
