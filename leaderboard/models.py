import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    return int(time.time() * 1000)


def utc_iso_now() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2026-01-02T03:04:05.678Z"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Session:
    """One in-progress game attempt, owned by the SessionRegistry."""
    token: str
    start_time: int
    signature: str
    interactions: int = 0
    last_interaction: Optional[int] = None
    submitted: bool = False


class ScoreCandidate(BaseModel):
    """Sanitized submission fields, ready to become a ScoreEntry."""
    name: str = Field(..., max_length=50)
    cinema: str = Field(..., max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    time: int = Field(..., ge=0)
    verified: bool = False
    mobile: bool = False


class ScoreEntry(BaseModel):
    """A persisted leaderboard record. Never updated after insertion.

    Keys this version does not know about are kept so a rewrite of the
    document does not drop them.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    cinema: str
    email: Optional[str] = None
    time: int
    date: str
    verified: bool = False
    mobile: bool = False

    @classmethod
    def from_candidate(cls, candidate: ScoreCandidate) -> "ScoreEntry":
        return cls(id=uuid.uuid4().hex, date=utc_iso_now(), **candidate.model_dump())
