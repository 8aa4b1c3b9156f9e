import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from ..errors import TalkPasteError
from ..settings.config import TARGET_SAMPLE_RATE


class BackendKind(Enum):
    LOCAL = "local"
    CLOUD = "cloud"


@dataclass(frozen=True)
class TranscriptionRequest:
    """
    Resampled audio bound for one backend call.

    The sample array is made read-only on construction and the request
    can be consumed once.
    """

    audio: np.ndarray
    backend: BackendKind
    model: str
    sample_rate: int = TARGET_SAMPLE_RATE
    _consumed: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        audio = np.array(self.audio, dtype=np.float32, copy=True)
        if audio.ndim != 1:
            raise ValueError("TranscriptionRequest audio must be mono (1-D)")
        audio.flags.writeable = False
        object.__setattr__(self, "audio", audio)

    @property
    def duration(self) -> float:
        return len(self.audio) / self.sample_rate

    @property
    def consumed(self) -> bool:
        return self._consumed.is_set()

    def consume(self) -> np.ndarray:
        if self._consumed.is_set():
            raise RuntimeError("TranscriptionRequest was already consumed")
        self._consumed.set()
        return self.audio


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    backend: BackendKind
    elapsed: float
    error: Optional[TalkPasteError] = None

    @property
    def ok(self) -> bool:
        return self.error is None
