"""
Key-value store with per-key expiry, shared by the rate limiter and the
consumed-nonce registry.

InMemoryTTLStore serves a single process (lazy expiry on access plus a
background sweep). RedisTTLStore keeps counters correct across worker
processes; expiry is Redis' own. get_ttl_store() picks Redis when REDIS_URL is set.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

import redis

from backend_stampid.stampid_logging import get_logger

logger = get_logger(__name__)

SWEEP_INTERVAL_SEC = 5 * 60
KEY_PREFIX = "stampid"


class TTLStore(ABC):
    @abstractmethod
    def incr(self, key: str, ttl_sec: float) -> tuple[int, float]:
        """
        Increment the counter at `key`. An absent or expired key starts at 1 with
        expiry now + ttl_sec. Returns (count, expires_at as Unix seconds).
        """
        ...

    @abstractmethod
    def add_if_absent(self, key: str, ttl_sec: float) -> bool:
        """Set `key` with expiry if it does not exist. True if this call created it."""
        ...


@dataclass
class _Bucket:
    count: int
    expires_at: float


class InMemoryTTLStore(TTLStore):
    """Thread-safe dict store. Per-process only."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._data: dict[str, _Bucket] = {}
        self._sweeper: threading.Thread | None = None
        self._stop = threading.Event()

    def incr(self, key: str, ttl_sec: float) -> tuple[int, float]:
        now = self._clock()
        with self._lock:
            bucket = self._data.get(key)
            if bucket is None or bucket.expires_at <= now:
                bucket = _Bucket(count=1, expires_at=now + ttl_sec)
                self._data[key] = bucket
            else:
                bucket.count += 1
            return bucket.count, bucket.expires_at

    def add_if_absent(self, key: str, ttl_sec: float) -> bool:
        now = self._clock()
        with self._lock:
            bucket = self._data.get(key)
            if bucket is not None and bucket.expires_at > now:
                return False
            self._data[key] = _Bucket(count=1, expires_at=now + ttl_sec)
            return True

    def sweep(self) -> int:
        """Drop expired keys. Returns number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, b in self._data.items() if b.expires_at <= now]
            for k in expired:
                del self._data[k]
        if expired:
            logger.debug("ttl_store_swept", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def start_sweeper(self, interval_sec: float = SWEEP_INTERVAL_SEC) -> None:
        """Run sweep() every interval_sec in a daemon thread until stop_sweeper()."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()

        def _loop() -> None:
            while not self._stop.wait(interval_sec):
                self.sweep()

        self._sweeper = threading.Thread(target=_loop, name="ttl-store-sweeper", daemon=True)
        self._sweeper.start()
        logger.info("ttl_store_sweeper_started", interval_sec=interval_sec)

    def stop_sweeper(self, timeout_sec: float = 5.0) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=timeout_sec)
            self._sweeper = None
            logger.info("ttl_store_sweeper_stopped")


class RedisTTLStore(TTLStore):
    """Redis-backed store: INCR with PEXPIRE on window start, SET NX PX for markers."""

    def __init__(self, client: Any, *, prefix: str = KEY_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = KEY_PREFIX) -> "RedisTTLStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def incr(self, key: str, ttl_sec: float) -> tuple[int, float]:
        k = self._key(key)
        ttl_ms = int(ttl_sec * 1000)
        pipe = self._client.pipeline()
        pipe.incr(k)
        pipe.pttl(k)
        count, pttl = pipe.execute()
        if int(count) == 1 or int(pttl) < 0:
            self._client.pexpire(k, ttl_ms)
            pttl = ttl_ms
        return int(count), time.time() + int(pttl) / 1000.0

    def add_if_absent(self, key: str, ttl_sec: float) -> bool:
        return bool(self._client.set(self._key(key), "1", nx=True, px=int(ttl_sec * 1000)))


_store: TTLStore | None = None
_store_lock = threading.Lock()


def get_ttl_store() -> TTLStore:
    """Process-wide store: Redis when REDIS_URL is configured, else in-memory."""
    global _store
    with _store_lock:
        if _store is None:
            from backend_stampid.config import get_settings

            url = get_settings().redis_url
            if url:
                _store = RedisTTLStore.from_url(url)
                logger.info("ttl_store_selected", backend="redis")
            else:
                _store = InMemoryTTLStore()
                logger.info("ttl_store_selected", backend="memory")
        return _store


def reset_ttl_store_for_test(store: TTLStore | None = None) -> None:
    global _store
    with _store_lock:
        _store = store
