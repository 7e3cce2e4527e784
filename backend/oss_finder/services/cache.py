import asyncio
import json
import time
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from loguru import logger


class CacheTTL:
    """Recommended time-to-live per payload kind, in seconds."""

    SEARCH_RESULTS = 60 * 60
    HEALTH_SCORE = 24 * 60 * 60
    PARSED_QUERY = 7 * 24 * 60 * 60
    PROJECT_DETAILS = 60 * 60


def generate_cache_key(prefix: str, params: Mapping[str, Any]) -> str:
    """Build a key that is identical for identical parameters in any order.

    ``None`` values are dropped, so an unset field and an omitted field map to
    the same key.
    """
    cleaned = {k: v for k, v in sorted(params.items()) if v is not None}
    payload = json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)
    return f"{prefix}:{payload}"


class InMemoryCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        # key -> (expires_at, value)
        self.store: Dict[str, Tuple[float, Any]] = {}

    def _live_entry(self, key: str) -> Optional[Tuple[float, Any]]:
        entry = self.store.get(key)
        if not entry:
            return None
        expires_at, _ = entry
        if self.clock() > expires_at:
            self.store.pop(key, None)
            return None
        return entry

    def get(self, key: str):
        entry = self._live_entry(key)
        return entry[1] if entry else None

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def set(self, key: str, value: Any, ttl: float = CacheTTL.SEARCH_RESULTS):
        self.store[key] = (self.clock() + ttl, value)

    def delete(self, key: str):
        self.store.pop(key, None)

    def clear(self):
        self.store.clear()

    def cleanup(self) -> int:
        now = self.clock()
        expired = [key for key, (expires_at, _) in self.store.items() if now > expires_at]
        for key in expired:
            del self.store[key]
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        return {"size": len(self.store), "keys": list(self.store.keys())}


class CacheSweeper:
    """Periodically evicts expired entries from an InMemoryCache."""

    def __init__(self, cache: InMemoryCache, interval_seconds: float = 300):
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"[cache] sweeper started, interval={self.interval_seconds}s")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[cache] sweeper stopped")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            removed = self.cache.cleanup()
            if removed:
                logger.debug(f"[cache] swept {removed} expired entries")
