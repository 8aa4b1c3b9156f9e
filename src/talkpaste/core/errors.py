"""
Error taxonomy for the recording-to-text pipeline.

Every error carries a short human readable message that the tray shows
when a session ends in the error state.
"""


class TalkPasteError(Exception):
    """Base class for all pipeline errors."""

    kind = "error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.kind)

    @property
    def message(self) -> str:
        return str(self)


class CaptureError(TalkPasteError):
    """Audio capture failed."""


class DeviceUnavailable(CaptureError):
    """No usable microphone."""

    kind = "device_unavailable"


class CaptureOverflow(CaptureError):
    """Recording exceeded the available buffer."""

    kind = "capture_overflow"


class BufferReleasedError(CaptureError):
    """Session buffer was already released."""

    kind = "buffer_released"


class EmptyRecording(CaptureError):
    """No audio was recorded."""

    kind = "empty_recording"


class UnsupportedFormat(TalkPasteError):
    """Audio format cannot be converted for transcription."""

    kind = "unsupported_format"


class TranscriptionError(TalkPasteError):
    """Transcription failed."""


class ModelLoadError(TranscriptionError):
    """Local model could not be loaded."""

    kind = "model_load"


class InferenceError(TranscriptionError):
    """Local model inference failed."""

    kind = "inference"


class AuthError(TranscriptionError):
    """Missing or rejected API key."""

    kind = "auth"


class NetworkError(TranscriptionError):
    """Transcription service unreachable."""

    kind = "network"


class RemoteError(TranscriptionError):
    """Transcription service returned an error."""

    kind = "remote"


class ClipboardError(TalkPasteError):
    """Could not copy text to the clipboard."""

    kind = "clipboard"
