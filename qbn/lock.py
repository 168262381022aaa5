from __future__ import annotations

import os
from contextlib import contextmanager

import redis


class SessionBusy(ValueError):
    pass


def lock_ttl_ms() -> int:
    return int(os.environ.get("QBN_LOCK_TTL_MS", "5000"))


@contextmanager
def session_lock(*, r: redis.Redis, session_id: str, ttl_ms: int | None = None):
    """Best-effort per-session lock.

    Deck, hand and variable updates are read-modify-write on one JSON blob, so
    concurrent requests for the same session must not interleave.
    """

    key = f"lock:qbn:session:{session_id}"
    acquired = r.set(key, "1", nx=True, px=ttl_ms or lock_ttl_ms())
    if not acquired:
        raise SessionBusy("Session is busy")
    try:
        yield
    finally:
        # Only safe with a single holder.
        r.delete(key)
