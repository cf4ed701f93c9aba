"""
Advisory cross-process lock for board mutations.

The sentinel file holds a single line ``<owner_token>:<created_at_ms>``.
Acquisition is a single non-blocking attempt: a fresh sentinel raises
``Busy``, a stale or unreadable one is evicted. The existence check and the
create are not one atomic step, so two processes can still both win after
evicting the same stale sentinel; this is a best-effort guard for
human/agent-paced use, not a correctness guarantee.
"""
from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .errors import Busy

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 60.0


def now_ms() -> int:
    return int(time.time() * 1000)


def default_token() -> str:
    return str(os.getpid())


@dataclass
class Sentinel:
    path: Path
    token: str
    created_ms: int

    @property
    def held_since(self) -> datetime:
        return datetime.fromtimestamp(self.created_ms / 1000, tz=timezone.utc)

    def age_ms(self, now: Optional[int] = None) -> int:
        return (now if now is not None else now_ms()) - self.created_ms


def read_sentinel(path: Path) -> Optional[Sentinel]:
    """Return the sentinel, or None when it is missing or unparseable."""
    try:
        raw = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    token, sep, ts = raw.rpartition(":")
    if not sep:
        return None
    try:
        created = int(ts)
    except ValueError:
        return None
    return Sentinel(path=path, token=token, created_ms=created)


def is_stale(sentinel: Optional[Sentinel], max_age_seconds: float, now: Optional[int] = None) -> bool:
    if sentinel is None:
        return True
    return sentinel.age_ms(now) > max_age_seconds * 1000


class BoardLock:
    """Sentinel-file lock; usable as a context manager."""

    def __init__(self, path: Path, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS, token: Optional[str] = None):
        self.path = Path(path)
        self.max_age_seconds = max_age_seconds
        self.token = token or default_token()
        self._held = False

    def acquire(self) -> None:
        if self.path.exists():
            current = read_sentinel(self.path)
            now = now_ms()
            if not is_stale(current, self.max_age_seconds, now):
                raise Busy(current.held_since, round(current.age_ms(now) / 1000))
            if current is None:
                logger.warning("Removing unreadable lock file %s", self.path)
            else:
                logger.warning(
                    "Removing stale lock file %s held by %s (age: %ss)",
                    self.path, current.token, round(current.age_ms(now) / 1000),
                )
            self.path.unlink(missing_ok=True)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(self.path, "x", encoding="utf-8") as fh:
                fh.write(f"{self.token}:{now_ms()}")
        except FileExistsError:
            # Another process created it between our check and create.
            current = read_sentinel(self.path)
            if current is None:
                raise Busy(None, 0)
            raise Busy(current.held_since, round(current.age_ms() / 1000))
        self._held = True

    def release(self) -> None:
        self.path.unlink(missing_ok=True)
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def __enter__(self) -> "BoardLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


@contextmanager
def board_lock(path: Path, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS, token: Optional[str] = None) -> Iterator[BoardLock]:
    """Hold the board lock for the duration of the block."""
    lock = BoardLock(path, max_age_seconds, token)
    lock.acquire()
    try:
        yield lock
    finally:
        lock.release()


def clean_stale_lock(path: Path, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS) -> bool:
    """Remove the sentinel if it is stale or unreadable. Returns True if removed."""
    path = Path(path)
    if not path.exists():
        return False
    if not is_stale(read_sentinel(path), max_age_seconds):
        return False
    path.unlink(missing_ok=True)
    logger.info("Cleaned stale lock file %s", path)
    return True
