from .backends import CloudBackend, LocalBackend, TranscriptionBackend, create_backend
from .types import BackendKind, TranscriptionRequest, TranscriptionResult

__all__ = [
    "BackendKind",
    "CloudBackend",
    "LocalBackend",
    "TranscriptionBackend",
    "TranscriptionRequest",
    "TranscriptionResult",
    "create_backend",
]
