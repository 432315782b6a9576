"""
Heuristics that decide whether a submitted time is marked as verified.

These only ever toggle the verified flag. A submission is never refused
because of them; the hard time bounds are checked separately.
"""

from typing import Optional

from .errors import ValidationError
from .models import Session, now_ms

MIN_TIME_MS = 3000
MAX_TIME_MS = 10 * 60 * 1000

# Allowance for round-trip latency between session start and submit
LATENCY_SLACK_MS = 2000
MIN_INTERACTIONS = 3


def check_time_bounds(time_ms: int) -> int:
    if time_ms < MIN_TIME_MS or time_ms > MAX_TIME_MS:
        raise ValidationError("Invalid time value")
    return time_ms


def is_plausible_duration(claimed_ms: int, session: Session, now: Optional[int] = None) -> bool:
    now = now_ms() if now is None else now
    session_duration = now - session.start_time
    return claimed_ms <= session_duration + LATENCY_SLACK_MS


def evaluate(claimed_ms: int, session: Optional[Session], now: Optional[int] = None) -> bool:
    """True when the claimed time fits the session and the player interacted enough.

    session is None for anonymous submissions and for tokens that were
    unknown, expired or already used.
    """
    if session is None:
        return False
    if not is_plausible_duration(claimed_ms, session, now):
        return False
    return session.interactions >= MIN_INTERACTIONS
