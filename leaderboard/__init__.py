"""Timed-game leaderboard service with session-token anti-cheat."""
