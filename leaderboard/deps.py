from typing import Optional

from .config import settings
from .sessions import SessionRegistry
from .store import ScoreStore

# Shared state for the process; tests swap these out directly
session_registry = SessionRegistry(max_age_ms=settings.session_max_age_sec * 1000)
score_store: Optional[ScoreStore] = None


def get_store() -> ScoreStore:
    global score_store
    if score_store is None:
        score_store = ScoreStore(
            settings.scores_file,
            capacity=settings.score_capacity,
            list_limit=settings.score_list_limit,
        )
    return score_store


def get_registry() -> SessionRegistry:
    return session_registry
