"""
Transcription backends.

Both backends take a ``TranscriptionRequest`` and hand back a
``TranscriptionResult``. Failures are reported inside the result, never
raised, so the session state machine can treat local and cloud
transcription the same way.
"""

import io
import os
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Type, Union

import numpy as np
import requests
import scipy.io.wavfile as wav

from ...utils.logger import get_logger, preview
from ..errors import (
    AuthError,
    InferenceError,
    ModelLoadError,
    NetworkError,
    RemoteError,
    TranscriptionError,
)
from .file_utils import (
    detect_model_type,
    find_transducer_files,
    find_whisper_files,
    missing_files,
)
from .types import BackendKind, TranscriptionRequest, TranscriptionResult

if TYPE_CHECKING:
    from ..settings import Settings

logger = get_logger(__name__)


class TranscriptionBackend(ABC):
    kind: BackendKind
    unexpected_error: Type[TranscriptionError] = TranscriptionError

    @property
    @abstractmethod
    def model(self) -> str:
        """Model reference sent along with each request."""

    def prepare(self) -> None:
        """Eager setup, e.g. loading a model. Raises on failure."""

    def unload(self) -> None:
        pass

    def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        audio = request.consume()
        start_time = time.time()

        try:
            text = self._transcribe(audio, request.sample_rate)
        except TranscriptionError as e:
            elapsed = time.time() - start_time
            logger.error(f"{self.kind.value} transcription failed after {elapsed:.2f}s: {e}")
            return TranscriptionResult(
                text="", backend=self.kind, elapsed=elapsed, error=e
            )
        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(f"Unexpected {self.kind.value} transcription error: {e}")
            return TranscriptionResult(
                text="",
                backend=self.kind,
                elapsed=elapsed,
                error=self.unexpected_error(str(e)),
            )

        elapsed = time.time() - start_time
        if elapsed > 0:
            logger.debug(
                f"Transcription finished: audio_len={request.duration:.2f}s, "
                f"time={elapsed:.2f}s, speed={request.duration / elapsed:.2f}x"
            )
        logger.info(f"Transcribed ({self.kind.value}): '{preview(text)}'")

        return TranscriptionResult(text=text, backend=self.kind, elapsed=elapsed)

    @abstractmethod
    def _transcribe(self, audio: np.ndarray, sample_rate: int) -> str:
        ...


class LocalBackend(TranscriptionBackend):
    """On-device inference with a sherpa-onnx offline recognizer."""

    kind = BackendKind.LOCAL
    unexpected_error = InferenceError

    def __init__(self, model_path: Union[str, Path], num_threads: int = 4):
        self._model_path = str(model_path)
        self._num_threads = num_threads
        self._recognizer = None
        self._lock = threading.Lock()

    @property
    def model(self) -> str:
        return self._model_path

    @property
    def is_loaded(self) -> bool:
        return self._recognizer is not None

    def prepare(self) -> None:
        with self._lock:
            self._ensure_loaded()

    def unload(self) -> None:
        with self._lock:
            if self._recognizer is not None:
                del self._recognizer
                self._recognizer = None

    def _transcribe(self, audio: np.ndarray, sample_rate: int) -> str:
        with self._lock:
            recognizer = self._ensure_loaded()

            try:
                stream = recognizer.create_stream()
                stream.accept_waveform(sample_rate, audio.copy())
                recognizer.decode_stream(stream)
                text = stream.result.text
            except Exception as e:
                raise InferenceError(f"Local inference failed: {e}") from e

        return (text or "").strip()

    def _ensure_loaded(self):
        if self._recognizer is not None:
            return self._recognizer

        model_path = self._model_path
        if not os.path.isdir(model_path):
            raise ModelLoadError(
                f"Model directory not found: {model_path}. "
                f"Please download the model first."
            )

        try:
            import sherpa_onnx
        except ImportError as e:
            raise ModelLoadError(f"sherpa-onnx is not installed: {e}") from e

        model_type = detect_model_type(model_path)
        if model_type is None:
            missing = missing_files(find_whisper_files(model_path))
            raise ModelLoadError(
                f"Missing model files in {model_path}: {', '.join(missing)}"
            )

        logger.info(f"Loading {model_type} model from {model_path}")
        start_time = time.time()

        try:
            if model_type == "whisper":
                files = find_whisper_files(model_path)
                recognizer = sherpa_onnx.OfflineRecognizer.from_whisper(
                    encoder=files["encoder"],
                    decoder=files["decoder"],
                    tokens=files["tokens"],
                    num_threads=self._num_threads,
                    provider="cpu",
                    debug=False,
                    decoding_method="greedy_search",
                )
            else:
                files = find_transducer_files(model_path)
                recognizer = sherpa_onnx.OfflineRecognizer.from_transducer(
                    encoder=files["encoder"],
                    decoder=files["decoder"],
                    joiner=files["joiner"],
                    tokens=files["tokens"],
                    num_threads=self._num_threads,
                    provider="cpu",
                    debug=False,
                    decoding_method="greedy_search",
                    model_type="nemo_transducer",
                )
        except Exception as e:
            raise ModelLoadError(
                f"Failed to load model from '{model_path}': {e}"
            ) from e

        logger.info(f"Model loaded in {time.time() - start_time:.2f}s")
        self._recognizer = recognizer
        return recognizer


class CloudBackend(TranscriptionBackend):
    """OpenAI-compatible ``/audio/transcriptions`` endpoint (Groq by default)."""

    kind = BackendKind.CLOUD
    unexpected_error = RemoteError

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str,
        timeout: float = 30.0,
    ):
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def model(self) -> str:
        return self._model

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/audio/transcriptions"

    def prepare(self) -> None:
        if not self._api_key:
            raise AuthError("No API key set")

    def _transcribe(self, audio: np.ndarray, sample_rate: int) -> str:
        if not self._api_key:
            raise AuthError("No API key set")

        with io.BytesIO() as payload:
            wav.write(payload, sample_rate, _to_pcm16(audio))
            payload.seek(0)

            try:
                response = requests.post(
                    self.endpoint,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    files={"file": ("audio.wav", payload, "audio/wav")},
                    data={"model": self._model, "response_format": "json"},
                    timeout=self.timeout,
                )
            except requests.Timeout as e:
                raise NetworkError(
                    f"Transcription request timed out after {self.timeout:.0f}s"
                ) from e
            except requests.RequestException as e:
                raise NetworkError(f"Transcription service unreachable: {e}") from e

        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: requests.Response) -> str:
        if response.status_code in (401, 403):
            raise AuthError(f"API key rejected ({response.status_code})")

        if not response.ok:
            raise RemoteError(
                f"Transcription API error {response.status_code}: "
                f"{_error_detail(response)}"
            )

        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            return response.text.strip()

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(f"Invalid response from transcription API: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("text"), str):
            raise RemoteError("Transcription API response has no text")

        return data["text"].strip()


def _to_pcm16(audio: np.ndarray) -> np.ndarray:
    clipped = np.clip(audio, -1.0, 1.0)
    return (clipped * 32767).astype(np.int16)


def _error_detail(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason or "unknown error"

    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return response.reason or "unknown error"


def create_backend(settings: "Settings") -> TranscriptionBackend:
    if settings.backend == BackendKind.LOCAL.value:
        return LocalBackend(
            model_path=settings.resolved_model_path,
            num_threads=settings.num_threads,
        )

    return CloudBackend(
        api_key=settings.api_key,
        model=settings.api_model,
        base_url=settings.api_base_url,
        timeout=settings.request_timeout,
    )
