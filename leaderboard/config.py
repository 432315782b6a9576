import os
from dataclasses import dataclass, field
from typing import List


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    scores_file: str = "./scores.json"
    score_capacity: int = 500
    score_list_limit: int = 50

    # Sessions older than this are swept regardless of state
    session_max_age_sec: int = 30 * 60
    session_sweep_interval_sec: int = 10 * 60

    submit_rate_limit: int = 10
    submit_rate_window_sec: int = 60
    session_rate_limit: int = 20
    session_rate_window_sec: int = 60

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3026

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            scores_file=os.getenv("SCORES_FILE", "./scores.json"),
            score_capacity=_env_int("SCORE_CAPACITY", 500),
            score_list_limit=_env_int("SCORE_LIST_LIMIT", 50),
            session_max_age_sec=_env_int("SESSION_MAX_AGE_SEC", 30 * 60),
            session_sweep_interval_sec=_env_int("SESSION_SWEEP_INTERVAL_SEC", 10 * 60),
            submit_rate_limit=_env_int("SUBMIT_RATE_LIMIT", 10),
            submit_rate_window_sec=_env_int("SUBMIT_RATE_WINDOW_SEC", 60),
            session_rate_limit=_env_int("SESSION_RATE_LIMIT", 20),
            session_rate_window_sec=_env_int("SESSION_RATE_WINDOW_SEC", 60),
            cors_origins=_env_list("CORS_ORIGINS", "*"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 3026),
        )


settings = Settings.from_env()
