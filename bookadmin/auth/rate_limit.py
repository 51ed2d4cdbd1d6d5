from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Dict, List, Tuple


class RateLimiter:
    """
    Simple in-memory rate limiter for login attempts.

    Tracks login attempts per identifier (email address).
    Rate limits after max_attempts within window_seconds. Identifiers whose
    attempts have all aged out of the window are forgotten, so the table only
    holds addresses tried within the current window.
    """

    def __init__(self, max_attempts: int = 5, window_seconds: int = 300):
        self._attempts: Dict[str, List[datetime]] = {}
        self._max_attempts = max_attempts
        self._window = timedelta(seconds=window_seconds)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._attempts)

    def _prune(self, now: datetime) -> None:
        for key in list(self._attempts):
            recent = [t for t in self._attempts[key] if now - t < self._window]
            if recent:
                self._attempts[key] = recent
            else:
                del self._attempts[key]

    def check_and_increment(self, identifier: str) -> Tuple[bool, int]:
        """
        Check if identifier is rate limited and record one more attempt.

        Returns:
            Tuple of (is_allowed, attempts_remaining)
        """
        now = datetime.now()
        key = identifier.strip().lower()
        with self._lock:
            self._prune(now)
            attempts = self._attempts.get(key, [])
            if len(attempts) >= self._max_attempts:
                return False, 0

            attempts.append(now)
            self._attempts[key] = attempts
            return True, self._max_attempts - len(attempts)

    def reset(self, identifier: str) -> None:
        """Forget attempts for an identifier (after a successful login)."""
        with self._lock:
            self._attempts.pop(identifier.strip().lower(), None)
