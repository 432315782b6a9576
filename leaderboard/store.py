"""
Leaderboard persistence.

Scores live in a single JSON document (a list of entries, fastest first).
Writers are serialized by a lock and every save replaces the whole file
atomically, so readers never observe a half-written document.
"""

import json
import os
import threading
import uuid
from pathlib import Path
from typing import List, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from .errors import StorageError
from .logging_utils import get_logger
from .models import ScoreCandidate, ScoreEntry

logger = get_logger("leaderboard.store")

DEFAULT_CAPACITY = 500
DEFAULT_LIST_LIMIT = 50

# Rank reported for an entry that did not survive truncation
EVICTED_RANK = 0


def _sort_by_time(entries: List[ScoreEntry]) -> List[ScoreEntry]:
    # sorted() is stable: earlier submissions keep their place on ties
    return sorted(entries, key=lambda e: e.time)


class ScoreStore:
    def __init__(
        self,
        path: Union[str, Path],
        capacity: int = DEFAULT_CAPACITY,
        list_limit: int = DEFAULT_LIST_LIMIT,
    ):
        self.path = Path(path)
        self.capacity = capacity
        self.list_limit = list_limit
        self._write_lock = threading.Lock()

    def ensure_exists(self) -> None:
        """Create an empty document if none exists yet."""
        with self._write_lock:
            if not self.path.exists():
                self._save([])
                logger.info("scores_file_created", extra={"scores_file": str(self.path)})

    def load(self) -> List[ScoreEntry]:
        """Read the full persisted collection in stored order."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except UnicodeDecodeError as exc:
            raise StorageError("Scores document is not valid UTF-8") from exc
        except OSError as exc:
            raise StorageError("Failed to read scores") from exc

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StorageError("Scores document is not valid JSON") from exc

        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageError("Scores document must be a list")
        try:
            return [ScoreEntry.model_validate(item) for item in data]
        except PydanticValidationError as exc:
            raise StorageError("Scores document contains an invalid entry") from exc

    def list(self) -> List[ScoreEntry]:
        """Fastest entries first, capped at list_limit. Never writes."""
        return _sort_by_time(self.load())[: self.list_limit]

    def insert(self, candidate: ScoreCandidate) -> Tuple[int, ScoreEntry]:
        """Store a new entry and return (rank, entry).

        rank is 1-based within the truncated leaderboard, or EVICTED_RANK
        when the entry was slower than every retained score.
        """
        entry = ScoreEntry.from_candidate(candidate)
        with self._write_lock:
            entries = self.load()
            entries.append(entry)
            entries = _sort_by_time(entries)[: self.capacity]
            self._save(entries)
        rank = _rank_in(entries, entry.id)
        logger.info(
            "score_saved",
            extra={
                "score_id": entry.id,
                "rank": rank,
                "retained": rank != EVICTED_RANK,
                "verified": entry.verified,
                "time_ms": entry.time,
            },
        )
        return rank, entry

    def rank_of(self, entry_id: str) -> int:
        return _rank_in(_sort_by_time(self.load()), entry_id)

    def _save(self, entries: List[ScoreEntry]) -> None:
        payload = json.dumps([e.model_dump() for e in entries], indent=2, ensure_ascii=False)
        tmp = self.path.with_name(self.path.name + f".tmp.{uuid.uuid4().hex}")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as exc:
            try:
                tmp.unlink()
            except OSError:
                pass
            raise StorageError("Failed to write scores") from exc


def _rank_in(entries: List[ScoreEntry], entry_id: str) -> int:
    for idx, entry in enumerate(entries, start=1):
        if entry.id == entry_id:
            return idx
    return EVICTED_RANK
