"""
Keyed TTL stores backing the OTP ledger, the per-phone request counters and
the revoked-token list.

Both stores expose the same async interface so the OTP service does not care
which one it gets:

* ``put(key, value, ttl)``: overwrite ``key`` with an expiry.
* ``compare_and_delete(key, expected)``: atomically delete ``key`` if it
  holds ``expected``. A mismatch leaves the entry alone.
* ``exists(key)``
* ``hit(key, window)``: fixed-window counter, returns ``(count, seconds_left)``.

Entries past their TTL are never visible, whatever the backend.
"""
import hmac
import threading
import time
from enum import Enum
from typing import Callable, Dict, Tuple

import redis.asyncio as redis


class CompareResult(str, Enum):
    missing = "missing"
    mismatch = "mismatch"
    consumed = "consumed"


# KEYS[1] = key, ARGV[1] = expected value
_COMPARE_AND_DELETE = """
local current = redis.call('GET', KEYS[1])
if not current then
    return -1
end
if current == ARGV[1] then
    redis.call('DEL', KEYS[1])
    return 1
end
return 0
"""

_SCRIPT_RESULTS = {-1: CompareResult.missing, 0: CompareResult.mismatch, 1: CompareResult.consumed}


class RedisStore:
    def __init__(self, connection: redis.Redis):
        self.redis = connection
        self._compare_and_delete = connection.register_script(_COMPARE_AND_DELETE)

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(redis.from_url(url, encoding="utf-8", decode_responses=True))

    async def put(self, key: str, value: str, ttl: int) -> None:
        await self.redis.set(key, value, ex=ttl)

    async def compare_and_delete(self, key: str, expected: str) -> CompareResult:
        result = await self._compare_and_delete(keys=[key], args=[expected])
        return _SCRIPT_RESULTS[int(result)]

    async def exists(self, key: str) -> bool:
        return bool(await self.redis.exists(key))

    async def hit(self, key: str, window: int) -> Tuple[int, int]:
        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, window, nx=True)
        pipe.ttl(key)
        count, _, ttl = await pipe.execute()
        return int(count), max(int(ttl), 0)

    async def close(self) -> None:
        await self.redis.aclose()


class MemoryStore:
    """
    Process-local store for development and tests.

    Every operation runs under one lock, so compare-and-delete is atomic with
    respect to concurrent requests in the same process. Expired entries are
    dropped lazily on access and swept on each write.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        # Format: {key: (value, expires_at)}
        self._data: Dict[str, Tuple[str, float]] = {}

    def _live(self, key: str):
        entry = self._data.get(key)
        if entry is None:
            return None
        if self._clock() > entry[1]:
            del self._data[key]
            return None
        return entry

    def _sweep(self) -> None:
        now = self._clock()
        for key in [k for k, (_, expires_at) in self._data.items() if now > expires_at]:
            del self._data[key]

    async def put(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._sweep()
            self._data[key] = (value, self._clock() + ttl)

    async def compare_and_delete(self, key: str, expected: str) -> CompareResult:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return CompareResult.missing
            if not hmac.compare_digest(entry[0], expected):
                return CompareResult.mismatch
            del self._data[key]
            return CompareResult.consumed

    async def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None

    async def hit(self, key: str, window: int) -> Tuple[int, int]:
        with self._lock:
            now = self._clock()
            entry = self._live(key)
            if entry is None:
                self._sweep()
                entry = ("0", now + window)
            count = int(entry[0]) + 1
            self._data[key] = (str(count), entry[1])
            return count, max(int(round(entry[1] - now)), 0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    async def close(self) -> None:
        with self._lock:
            self._data.clear()
