"""
Transcription history persisted as JSON.

The state machine only relies on ``record(entry)``; listing and clearing
exist for the tray's recent-history menu.
"""

import json
import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...utils.logger import get_logger
from .config import MAX_HISTORY_ENTRIES
from .settings import get_data_dir

logger = get_logger(__name__)


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())
    backend: str

    def to_dict(self) -> dict:
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        return cls.model_validate(data)


def get_history_file() -> Path:
    return get_data_dir() / "history.json"


class JsonHistorySink:

    def __init__(
        self,
        path: Optional[Path] = None,
        max_entries: int = MAX_HISTORY_ENTRIES,
    ):
        self._path = Path(path) if path is not None else get_history_file()
        self._max_entries = max_entries

    @property
    def path(self) -> Path:
        return self._path

    def record(self, entry: HistoryEntry) -> None:
        entries = self.load()
        entries.append(entry)
        self._save(entries)
        logger.debug(f"Recorded transcription to history: {len(entry.text)} chars")

    def load(self) -> List[HistoryEntry]:
        if not self._path.exists():
            return []

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)

            return [HistoryEntry.from_dict(item) for item in data]
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning(f"Could not load history: {e}. Starting fresh.")
            return []

    def recent(self, limit: int = MAX_HISTORY_ENTRIES) -> List[HistoryEntry]:
        """Newest first."""
        return list(reversed(self.load()))[:limit]

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()

    def _save(self, entries: List[HistoryEntry]) -> None:
        entries = entries[-self._max_entries :]
        self._path.parent.mkdir(parents=True, exist_ok=True)

        # Readers on the GUI thread only ever see a complete file
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            json.dump([entry.to_dict() for entry in entries], f, indent=2)
            tmp_path = Path(f.name)

        try:
            os.replace(tmp_path, self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
