import sys
from pathlib import Path
import pytest

# Ensure project root is on sys.path so tests can import the `leaderboard` package
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_shared_state():
	# Clear the in-memory rate limiter and sessions between tests to avoid cross-test flakiness
	from leaderboard import deps, ratelimit
	ratelimit.reset()
	deps.session_registry.clear()
	yield
	deps.score_store = None


@pytest.fixture
def store(tmp_path):
	from leaderboard import deps
	from leaderboard.store import ScoreStore
	s = ScoreStore(tmp_path / 'scores.json')
	s.ensure_exists()
	deps.score_store = s
	return s
