"""
Session state machine for the record -> transcribe -> deliver cycle.

Owns the microphone and the single active-session slot. Every state
change goes through one of the transition methods below, under one lock,
so at most one session is ever recording or transcribing.

    IDLE --trigger--> RECORDING --trigger--> TRANSCRIBING --result--> IDLE
                          |                        |
                          +--------> ERROR <-------+
                                       |
                                       +--acknowledge_error--> IDLE

Transcription, delivery and history run on a single worker thread, so
callers of ``trigger()`` never block on inference or the network.
"""

import threading
import time
import uuid
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Callable, Optional, Protocol, Type

from ...utils.logger import get_logger, preview
from ..asr.backends import TranscriptionBackend
from ..asr.types import TranscriptionRequest, TranscriptionResult
from ..audio.buffer import SessionBuffer
from ..audio.capture import CaptureSource
from ..audio.resampler import resample
from ..errors import CaptureError, ClipboardError, EmptyRecording, TalkPasteError
from ..output.text_output import DeliveryOutcome
from ..settings.history import HistoryEntry

logger = get_logger(__name__)


class SessionState(Enum):
    IDLE = auto()
    RECORDING = auto()
    TRANSCRIBING = auto()
    ERROR = auto()


@dataclass
class Session:
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: SessionState = SessionState.RECORDING
    started_at: datetime = field(default_factory=datetime.now)
    frame_count: int = 0
    error: Optional[TalkPasteError] = None
    outcome: Optional[DeliveryOutcome] = None


class Dispatcher(Protocol):
    def deliver(self, text: str) -> DeliveryOutcome:
        ...


class HistorySink(Protocol):
    def record(self, entry: HistoryEntry) -> None:
        ...


StateCallback = Callable[[SessionState, Optional[Session]], None]
ResultCallback = Callable[[TranscriptionResult, Optional[DeliveryOutcome]], None]


class SessionStateMachine:

    def __init__(
        self,
        capture: CaptureSource,
        backend: TranscriptionBackend,
        dispatcher: Dispatcher,
        history: Optional[HistorySink] = None,
        max_recording_seconds: Optional[float] = None,
        executor: Optional[Executor] = None,
        buffer_factory: Optional[Callable[[], SessionBuffer]] = None,
        on_state_change: Optional[StateCallback] = None,
        on_result: Optional[ResultCallback] = None,
    ):
        self._capture = capture
        self._backend = backend
        self._dispatcher = dispatcher
        self._history = history
        self._max_recording_seconds = max_recording_seconds
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="transcribe"
        )
        self._buffer_factory = buffer_factory or SessionBuffer
        self.on_state_change = on_state_change
        self.on_result = on_result

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session: Optional[Session] = None
        self._buffer: Optional[SessionBuffer] = None
        self._pending: Optional[Future] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def backend(self) -> TranscriptionBackend:
        return self._backend

    @property
    def pending(self) -> Optional[Future]:
        """Future of the most recent transcription job."""
        return self._pending

    # ------------------------------------------------------------------
    # User-facing transitions
    # ------------------------------------------------------------------

    def trigger(self) -> SessionState:
        """Start or stop recording depending on the current state."""
        with self._lock:
            if self._state == SessionState.IDLE:
                self.start_recording()
            elif self._state == SessionState.RECORDING:
                self.stop_recording()
            else:
                logger.debug(f"Trigger ignored in state {self._state.name}")
            return self._state

    def start_recording(self) -> bool:
        with self._lock:
            if self._state != SessionState.IDLE:
                logger.debug(f"Cannot start recording in state {self._state.name}")
                return False

            session = Session()
            self._session = session
            self._buffer = self._buffer_factory()
            self._set_state(SessionState.RECORDING)

            try:
                rate = self._capture.resolve_sample_rate()
                self._buffer.max_samples = self._max_samples(rate)
                self._capture.start(self._on_frame)
            except Exception as e:
                self._abandon_recording(e, "Recording error")
                return False

            logger.info(f"Recording started (session {session.id[:8]})")
            return True

    def stop_recording(self) -> bool:
        with self._lock:
            if self._state != SessionState.RECORDING:
                logger.debug(f"Cannot stop recording in state {self._state.name}")
                return False

            session = self._session
            self._set_state(SessionState.TRANSCRIBING)

            try:
                duration = self._capture.stop()
                samples = self._buffer.drain()
                source_rate = self._capture.active_sample_rate or self._capture.sample_rate
                audio = resample(samples, source_rate)
            except Exception as e:
                self._abandon_recording(e, "Failed to finish recording")
                return False

            self._buffer = None
            del samples

            if audio.size == 0:
                logger.warning("No audio data captured")
                error = EmptyRecording()
                self._publish_result(
                    TranscriptionResult(
                        text="", backend=self._backend.kind, elapsed=0.0, error=error
                    ),
                    None,
                )
                self._fail(error)
                return True

            request = TranscriptionRequest(
                audio=audio,
                backend=self._backend.kind,
                model=self._backend.model,
            )
            del audio

            logger.info(
                f"Captured {duration:.2f}s ({session.frame_count} frames), "
                f"starting background transcription"
            )
            self._pending = self._executor.submit(self._run_transcription, session, request)
            return True

    def cancel_recording(self) -> bool:
        """Stop recording and throw the audio away."""
        with self._lock:
            if self._state != SessionState.RECORDING:
                return False

            try:
                self._capture.abort()
            finally:
                self._release_buffer()

            logger.info("Recording cancelled")
            self._finish()
            return True

    def acknowledge_error(self) -> bool:
        with self._lock:
            if self._state != SessionState.ERROR:
                return False

            logger.debug("Error acknowledged")
            self._finish()
            return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def warm_up(self) -> Future:
        """Prepare the backend on the transcription worker."""
        return self._executor.submit(self._prepare_backend)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._state == SessionState.RECORDING:
                self.cancel_recording()

        if self._owns_executor:
            self._executor.shutdown(wait=wait)
        self._backend.unload()

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _prepare_backend(self) -> None:
        start_time = time.time()
        try:
            self._backend.prepare()
        except TalkPasteError as e:
            logger.warning(f"Backend not ready: {e}")
            raise
        logger.info(
            f"{self._backend.kind.value} backend ready in {time.time() - start_time:.2f}s"
        )

    def _run_transcription(
        self, session: Session, request: TranscriptionRequest
    ) -> Optional[TranscriptionResult]:
        try:
            return self._transcribe_and_deliver(session, request)
        except Exception as e:
            logger.exception(f"Transcription job failed: {e}")
            with self._lock:
                if self._session is session and self._state == SessionState.TRANSCRIBING:
                    self._fail(_as_error(e, TalkPasteError))
            return None

    def _transcribe_and_deliver(
        self, session: Session, request: TranscriptionRequest
    ) -> TranscriptionResult:
        result = self._backend.transcribe(request)

        if not result.ok:
            self._publish_result(result, None)
            with self._lock:
                self._fail(result.error)
            return result

        outcome: Optional[DeliveryOutcome] = None
        delivery_error: Optional[TalkPasteError] = None
        try:
            outcome = self._dispatcher.deliver(result.text)
            logger.info(f"Delivered transcript ({outcome.name}): '{preview(result.text)}'")
        except ClipboardError as e:
            logger.error(f"Clipboard error: {e}")
            delivery_error = e
        except Exception as e:
            logger.exception(f"Delivery failed: {e}")
            delivery_error = ClipboardError(f"Could not deliver transcript: {e}")

        self._record_history(result)
        self._publish_result(result, outcome)

        with self._lock:
            session.outcome = outcome
            if delivery_error is not None:
                self._fail(delivery_error)
            else:
                self._finish()

        return result

    def _record_history(self, result: TranscriptionResult) -> None:
        if self._history is None:
            return

        entry = HistoryEntry(text=result.text, backend=result.backend.value)
        try:
            self._history.record(entry)
        except (OSError, ValueError) as e:
            logger.error(f"History write failed: {e}")
        except Exception:
            logger.exception("History write failed")

    def _publish_result(
        self, result: TranscriptionResult, outcome: Optional[DeliveryOutcome]
    ) -> None:
        if self.on_result is None:
            return
        try:
            self.on_result(result, outcome)
        except Exception:
            logger.exception("Result callback failed")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_frame(self, frame) -> None:
        buffer = self._buffer
        if buffer is None:
            return
        buffer.append(frame)
        session = self._session
        if session is not None:
            session.frame_count += 1

    def _max_samples(self, rate: Optional[float]) -> Optional[int]:
        if not self._max_recording_seconds or not rate:
            return None
        return int(self._max_recording_seconds * rate)

    def _abandon_recording(self, error: Exception, context: str) -> None:
        if isinstance(error, TalkPasteError):
            logger.error(f"{context}: {error}")
        else:
            logger.exception(f"{context}: {error}")
        if self._capture.is_active:
            self._capture.abort()
        self._release_buffer()
        self._fail(_as_error(error, CaptureError))

    def _release_buffer(self) -> None:
        buffer, self._buffer = self._buffer, None
        if buffer is not None:
            buffer.discard()

    def _fail(self, error: TalkPasteError) -> None:
        if self._session is not None:
            self._session.error = error
        self._set_state(SessionState.ERROR)

    def _finish(self) -> None:
        self._set_state(SessionState.IDLE)
        self._session = None

    def _set_state(self, state: SessionState) -> None:
        previous = self._state
        self._state = state
        if self._session is not None:
            self._session.state = state

        logger.debug(f"Session state: {previous.name} -> {state.name}")

        if self.on_state_change is None:
            return
        try:
            self.on_state_change(state, self._session)
        except Exception:
            logger.exception("State change callback failed")


def _as_error(error: Exception, fallback: Type[TalkPasteError]) -> TalkPasteError:
    if isinstance(error, TalkPasteError):
        return error
    return fallback(f"Unexpected error: {error}")
