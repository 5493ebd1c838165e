"""
Caching Layer using diskcache.

Provides persistent TTL caching for spatial analyses and lead scores, and
collapses concurrent identical computations into a single in-flight task.
"""

import asyncio
import hashlib
import logging
import time
from typing import Awaitable, Callable, Dict, Optional, Type, TypeVar

import diskcache
from pydantic import BaseModel

from ..exceptions import CacheUnavailable
from ..models import CacheEntry

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class _Flight:
    """A shared computation and the number of callers waiting on it."""

    def __init__(self, task: asyncio.Task):
        self.task = task
        self.waiters = 0


class ResultCache:
    """
    Disk-based cache service for storing analysis and scoring results.

    Each value is stored as a CacheEntry carrying its own expiry instant,
    which is checked on every read, so an entry is never returned after it
    expires even if diskcache has not purged it yet.
    """

    def __init__(
        self,
        directory: str,
        default_ttl: int = 86400,
        clock: Callable[[], float] = time.time,
        size_limit: int = 2**30,  # 1GB limit
    ):
        self._directory = directory
        self._default_ttl = default_ttl
        self._clock = clock
        self._size_limit = size_limit
        self._cache: Optional[diskcache.Cache] = None
        self._initialized = False
        self._in_flight: Dict[str, _Flight] = {}

    def initialize(self) -> None:
        """Initialize the cache directory."""
        if self._initialized:
            return

        try:
            self._cache = diskcache.Cache(self._directory, size_limit=self._size_limit)
            self._initialized = True
            logger.info(f"Cache initialized at {self._directory}")
        except Exception as e:
            logger.error(f"Failed to initialize cache: {e}")
            # Continue without cache - it's not critical
            self._initialized = False

    def close(self) -> None:
        """Close the cache."""
        if self._cache:
            try:
                self._cache.close()
            except Exception as e:
                logger.warning(f"Error closing cache: {e}")
            self._cache = None
            self._initialized = False

    @property
    def is_ready(self) -> bool:
        """Check if cache is ready."""
        return self._initialized and self._cache is not None

    @staticmethod
    def make_key(prefix: str, *parts: object) -> str:
        """
        Generate a cache key from request parameters.

        Uses MD5 hash for consistent, fixed-length keys.
        """
        normalized = "|".join(str(part) for part in parts)
        key_hash = hashlib.md5(normalized.encode()).hexdigest()
        return f"{prefix}:{key_hash}"

    def _read_entry(self, key: str) -> Optional[CacheEntry]:
        if not self.is_ready:
            return None
        try:
            raw = self._cache.get(key)
        except Exception as e:
            raise CacheUnavailable(f"Error reading from cache: {e}") from e
        if raw is None:
            return None
        return CacheEntry.model_validate_json(raw)

    def get(self, key: str, model_type: Type[ModelT]) -> Optional[ModelT]:
        """
        Get a cached result.

        Args:
            key: Cache key (see make_key)
            model_type: Pydantic model to deserialize into

        Returns:
            Cached model or None if not found/expired/unavailable
        """
        try:
            entry = self._read_entry(key)
        except CacheUnavailable as e:
            logger.warning(f"{e.message}; computing fresh result")
            return None
        except ValueError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            self.delete(key)
            return None

        if entry is None:
            logger.debug(f"Cache miss for key: {key}")
            return None

        if entry.expires_at <= self._clock():
            logger.debug(f"Cache entry expired for key: {key}")
            self.delete(key)
            return None

        try:
            value = model_type.model_validate_json(entry.value)
        except ValueError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            self.delete(key)
            return None

        logger.info(f"Cache hit for key: {key}")
        return value

    def set(self, key: str, value: BaseModel, ttl: Optional[int] = None) -> bool:
        """
        Cache a result.

        Args:
            key: Cache key (see make_key)
            value: Pydantic model to store
            ttl: Time to live in seconds (default: cache default TTL)

        Returns:
            True if successfully cached, False otherwise
        """
        if not self.is_ready:
            return False

        ttl = self._default_ttl if ttl is None else ttl
        entry = CacheEntry(key=key, value=value.model_dump_json(), expires_at=self._clock() + ttl)

        try:
            self._cache.set(key, entry.model_dump_json(), expire=ttl)
        except Exception as e:
            logger.warning(f"Error writing to cache: {e}")
            return False

        logger.info(f"Cached result for key: {key} (TTL: {ttl}s)")
        return True

    def delete(self, key: str) -> bool:
        """
        Delete a cached entry.

        Returns:
            True if deleted, False otherwise
        """
        if not self.is_ready:
            return False

        try:
            deleted = self._cache.delete(key)
            if deleted:
                logger.info(f"Deleted cache entry: {key}")
            return deleted
        except Exception as e:
            logger.warning(f"Error deleting from cache: {e}")
            return False

    def clear(self) -> bool:
        """
        Clear all cached entries.

        Returns:
            True if successful, False otherwise
        """
        if not self.is_ready:
            return False

        try:
            self._cache.clear()
            logger.info("Cache cleared")
            return True
        except Exception as e:
            logger.warning(f"Error clearing cache: {e}")
            return False

    def stats(self) -> dict:
        """Get cache statistics."""
        if not self.is_ready:
            return {"status": "not initialized", "in_flight": len(self._in_flight)}

        try:
            return {
                "status": "ready",
                "size": len(self._cache),
                "directory": self._directory,
                "ttl_seconds": self._default_ttl,
                "in_flight": len(self._in_flight),
            }
        except Exception as e:
            return {"status": "error", "error": str(e)}

    async def get_or_compute(
        self,
        key: str,
        model_type: Type[ModelT],
        compute: Callable[[], Awaitable[ModelT]],
        ttl: Optional[int] = None,
    ) -> ModelT:
        """
        Return the cached value for key, computing and caching it on a miss.

        Concurrent callers for the same key share one computation. The
        shared computation is cancelled only when every caller waiting on
        it has been cancelled.
        """
        cached = self.get(key, model_type)
        if cached is not None:
            return cached

        flight = self._in_flight.get(key)
        if flight is None:
            task = asyncio.ensure_future(self._compute_and_store(key, compute, ttl))
            flight = _Flight(task)
            self._in_flight[key] = flight
            task.add_done_callback(lambda _: self._forget(key, flight))
        else:
            logger.debug(f"Joining in-flight computation for key: {key}")

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                logger.info(f"All callers cancelled, cancelling computation for key: {key}")
                flight.task.cancel()

    async def _compute_and_store(self, key: str, compute, ttl: Optional[int]):
        result = await compute()
        self.set(key, result, ttl)
        return result

    def _forget(self, key: str, flight: _Flight) -> None:
        if self._in_flight.get(key) is flight:
            del self._in_flight[key]
