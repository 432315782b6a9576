"""
In-memory registry of active game sessions.
Issues signed tokens, counts interactions and hands each session out for
scoring at most once.
"""

import asyncio
import dataclasses
import secrets
import threading
from typing import Dict, Optional, Tuple

from .logging_utils import get_logger
from .models import Session, now_ms
from .signing import Signer, partial

logger = get_logger("leaderboard.sessions")

MAX_SESSION_AGE_MS = 30 * 60 * 1000
TOKEN_BYTES = 32


class SessionRegistry:
    """Thread-safe token -> Session map.

    Every read-modify-write and the expiry sweep run under a single lock, so
    two submissions racing on one token cannot both see it unsubmitted.
    """

    def __init__(self, signer: Optional[Signer] = None, max_age_ms: int = MAX_SESSION_AGE_MS):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._signer = signer or Signer()
        self.max_age_ms = max_age_ms

    def start(self) -> Tuple[str, int, str]:
        """Create a session. Returns (token, start_time, partial signature)."""
        token = secrets.token_hex(TOKEN_BYTES)
        start_time = now_ms()
        signature = self._signer.issue(token, start_time)
        with self._lock:
            self._sessions[token] = Session(token=token, start_time=start_time, signature=signature)
            active = len(self._sessions)
        logger.debug("session_started", extra={"active_sessions": active})
        return token, start_time, partial(signature)

    def interact(self, token: Optional[str]) -> bool:
        if not token:
            return False
        with self._lock:
            session = self._sessions.get(token)
            if session is None or session.submitted:
                return False
            session.interactions += 1
            session.last_interaction = now_ms()
            return True

    def consume(self, token: Optional[str]) -> Optional[Session]:
        """Mark a live session as submitted and return a snapshot of it.

        Returns None for unknown, expired or already-submitted tokens. The
        caller deletes the entry once the submission is stored.
        """
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is None or session.submitted:
                return None
            if not self._signer.verify(session.token, session.start_time, session.signature):
                return None
            session.submitted = True
            return dataclasses.replace(session)

    def delete(self, token: Optional[str]) -> bool:
        if not token:
            return False
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def get(self, token: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(token)
            return dataclasses.replace(session) if session else None

    def sweep(self, now: Optional[int] = None) -> int:
        """Remove sessions older than max_age_ms, submitted or not."""
        now = now_ms() if now is None else now
        with self._lock:
            expired = [
                token for token, session in self._sessions.items()
                if now - session.start_time > self.max_age_ms
            ]
            for token in expired:
                del self._sessions[token]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


async def sweep_periodically(registry: SessionRegistry, interval_seconds: float) -> None:
    """Run registry.sweep() every interval until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = registry.sweep()
        except Exception:
            logger.exception("session_sweep_failed")
            continue
        if removed:
            logger.info("sessions_swept", extra={"removed": removed, "active_sessions": len(registry)})
