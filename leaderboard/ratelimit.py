import threading
import time
from typing import Dict, List, Tuple

from fastapi import HTTPException, Request

# (scope, client ip) -> request timestamps inside the current window
_RATE_LIMIT_STORE: Dict[Tuple[str, str], List[float]] = {}
_LOCK = threading.Lock()


def _drop_idle_clients(scope: str, cutoff: float) -> None:
    idle = [
        key for key, stamps in _RATE_LIMIT_STORE.items()
        if key[0] == scope and (not stamps or stamps[-1] <= cutoff)
    ]
    for key in idle:
        del _RATE_LIMIT_STORE[key]


def check_rate_limit(request: Request, scope: str, max_requests: int, window_seconds: int) -> bool:
    """
    Sliding-window limiter keyed by endpoint scope and client IP.
    Returns True if the request is allowed, False if it should be throttled.
    """
    client_ip = request.client.host if request.client else "unknown"
    key = (scope, client_ip)
    now = time.time()
    cutoff = now - window_seconds

    with _LOCK:
        _drop_idle_clients(scope, cutoff)
        recent = [t for t in _RATE_LIMIT_STORE.get(key, []) if t > cutoff]
        if len(recent) >= max_requests:
            _RATE_LIMIT_STORE[key] = recent
            return False
        recent.append(now)
        _RATE_LIMIT_STORE[key] = recent
        return True


def rate_limit_dependency(scope: str, max_requests: int, window_seconds: int, message: str = "Too many requests"):
    """Create a dependency that raises HTTP 429 once the client exceeds the limit"""
    def dependency(request: Request):
        if not check_rate_limit(request, scope, max_requests, window_seconds):
            raise HTTPException(status_code=429, detail=message)
    return dependency


def reset() -> None:
    with _LOCK:
        _RATE_LIMIT_STORE.clear()
