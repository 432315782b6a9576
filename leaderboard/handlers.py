"""
Request handlers for the four leaderboard operations.

Handlers take already-decoded JSON bodies and return a HandlerResult that
the web layer serializes as-is. They never raise for expected failures.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from . import anticheat
from .errors import StorageError, ValidationError
from .logging_utils import get_logger
from .models import ScoreCandidate
from .sessions import SessionRegistry
from .store import EVICTED_RANK, ScoreStore

logger = get_logger("leaderboard.handlers")

NAME_MAX = 50
CINEMA_MAX = 100
EMAIL_MAX = 100

# Longer digit strings are far outside the accepted range anyway
_INT_RE = re.compile(r"^[+-]?[0-9]{1,9}$")


@dataclass
class HandlerResult:
    status_code: int = 200
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return bool(self.body.get("success"))


def _failure(status_code: int, error: str) -> HandlerResult:
    return HandlerResult(status_code, {"success": False, "error": error})


def _as_dict(payload: Any) -> Dict[str, Any]:
    return payload if isinstance(payload, dict) else {}


def _clean_text(value: Any, limit: int) -> str:
    return str(value).strip()[:limit]


def _parse_time(value: Any) -> int:
    # bool is an int subclass; JSON true/false is not a time
    if isinstance(value, bool):
        raise ValidationError("Invalid time value")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INT_RE.match(value.strip()):
        return int(value.strip())
    raise ValidationError("Invalid time value")


def validate_submission(payload: Dict[str, Any]) -> ScoreCandidate:
    """Check and sanitize submission fields. Raises ValidationError."""
    name = payload.get("name")
    cinema = payload.get("cinema")
    time_value = payload.get("time")
    if not name or not cinema or not time_value:
        raise ValidationError("Missing required fields: name, cinema, time")

    clean_name = _clean_text(name, NAME_MAX)
    clean_cinema = _clean_text(cinema, CINEMA_MAX)
    if not clean_name or not clean_cinema:
        raise ValidationError("Missing required fields: name, cinema, time")

    time_ms = anticheat.check_time_bounds(_parse_time(time_value))

    email = payload.get("email")
    clean_email = _clean_text(email, EMAIL_MAX) if email else None

    return ScoreCandidate(
        name=clean_name,
        cinema=clean_cinema,
        email=clean_email or None,
        time=time_ms,
        mobile=payload.get("mobile") is True,
    )


def list_scores(store: ScoreStore) -> HandlerResult:
    try:
        scores = store.list()
    except StorageError as exc:
        logger.exception("scores_load_failed", extra={"error": exc.message})
        return _failure(500, "Failed to load scores")
    return HandlerResult(200, {"success": True, "scores": [s.model_dump() for s in scores]})


def start_session(registry: SessionRegistry) -> HandlerResult:
    try:
        token, _start_time, signature = registry.start()
    except Exception:
        logger.exception("session_start_failed")
        return _failure(500, "Failed to create session")
    return HandlerResult(200, {"success": True, "token": token, "signature": signature})


def record_interaction(payload: Optional[Dict[str, Any]], registry: SessionRegistry) -> HandlerResult:
    token = _as_dict(payload).get("token")
    accepted = isinstance(token, str) and registry.interact(token)
    return HandlerResult(200, {"success": accepted})


def submit_score(
    payload: Optional[Dict[str, Any]],
    registry: SessionRegistry,
    store: ScoreStore,
) -> HandlerResult:
    body = _as_dict(payload)
    try:
        candidate = validate_submission(body)
    except ValidationError as exc:
        logger.info("score_rejected", extra={"error": exc.message})
        return _failure(exc.status_code, exc.message)

    token = body.get("token")
    if not isinstance(token, str):
        token = None

    session = registry.consume(token) if token else None
    candidate.verified = anticheat.evaluate(candidate.time, session)

    try:
        rank, entry = store.insert(candidate)
    except StorageError as exc:
        logger.exception("score_save_failed", extra={"error": exc.message})
        return _failure(500, "Failed to save score")
    finally:
        if token:
            registry.delete(token)

    return HandlerResult(
        200,
        {
            "success": True,
            "rank": rank,
            "retained": rank != EVICTED_RANK,
            "score": entry.model_dump(),
        },
    )
