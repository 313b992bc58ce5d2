"""In-memory failed-login counter.

Tracks failed attempts per key (normalised email) inside a fixed window.
State is process-local; a multi-process deployment throttles per process.
Lapsed windows are pruned on every recorded failure and the table never
holds more than ``MAX_TRACKED_KEYS`` entries.
"""

import time
from collections.abc import Hashable

MAX_TRACKED_KEYS = 10_000

# key -> (window_started_at, failures)
_attempts: dict[Hashable, tuple[float, int]] = {}


def is_blocked(key: Hashable, max_attempts: int, window: float) -> bool:
    """Return True if ``key`` has reached ``max_attempts`` inside the window."""
    entry = _attempts.get(key)
    if entry is None:
        return False
    started_at, failures = entry
    if time.monotonic() - started_at > window:
        _attempts.pop(key, None)
        return False
    return failures >= max_attempts


def record_failure(key: Hashable, window: float) -> int:
    """Count a failed attempt and return the failures in the current window."""
    now = time.monotonic()
    _prune(now, window, key)
    started_at, failures = _attempts.get(key, (now, 0))
    if now - started_at > window:
        started_at, failures = now, 0
    failures += 1
    _attempts[key] = (started_at, failures)
    return failures


def _prune(now: float, window: float, incoming: Hashable) -> None:
    for stale in [k for k, (started_at, _) in _attempts.items() if now - started_at > window]:
        del _attempts[stale]
    if incoming in _attempts:
        return
    # Still full: evict the oldest windows to make room for the new key
    overflow = len(_attempts) - MAX_TRACKED_KEYS + 1
    if overflow > 0:
        for oldest in sorted(_attempts, key=lambda k: _attempts[k][0])[:overflow]:
            del _attempts[oldest]


def reset(key: Hashable) -> None:
    """Forget a key, e.g. after a successful login."""
    _attempts.pop(key, None)


def clear() -> None:
    """Clear all tracked attempts."""
    _attempts.clear()
