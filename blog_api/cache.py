"""
Read-through cache for post and comment views.

List keys are parameterized by (page, limit), so the set of populated keys
is open-ended. Invalidation sweeps a bounded grid of keys instead of
tracking them: pages 1..max_pages_to_clear times limits
limit_step..max_limit in steps of limit_step. A list cached outside that
grid (e.g. limit=3 with limit_step=5) is not swept and stays stale until
its TTL runs out.
"""
import time
from typing import Any, Awaitable, Callable, Hashable, NamedTuple, Optional, TypeVar

from cachetools import TLRUCache
from loguru import logger

from .exceptions import CacheError

T = TypeVar("T")

POST_LIST_KEY = "post_list_page_{page}_limit_{limit}"
POST_DETAIL_KEY = "post_detail_{post_id}"
COMMENT_LIST_KEY = "comments_post_{post_id}_page_{page}_limit_{limit}"
COMMENT_DETAIL_KEY = "comment_detail_{comment_id}"

_MISSING = object()


class _Entry(NamedTuple):
    value: Any
    ttl: float


def _time_to_use(key: Hashable, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class CacheStore:
    """Single-process TTL key-value store.

    Each entry carries its own TTL. Size-bound eviction is left to the
    underlying TLRUCache.
    """

    def __init__(self, maxsize: int = 10_000, timer: Callable[[], float] = time.monotonic):
        self._cache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=timer)

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._cache.get(key, _MISSING)
        if entry is _MISSING:
            return default
        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        self._cache[key] = _Entry(value, ttl)

    def delete(self, key: str) -> bool:
        """Remove a key; a missing key is a no-op."""
        return self._cache.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        self._cache.expire()
        return len(self._cache)


class CacheService:
    def __init__(
        self,
        store: CacheStore,
        list_ttl: int,
        detail_ttl: int,
        max_pages_to_clear: int,
        limit_step: int,
        max_limit: int,
    ):
        if limit_step <= 0:
            raise ValueError("limit_step must be positive")
        self.store = store
        self.list_ttl = list_ttl
        self.detail_ttl = detail_ttl
        self.max_pages_to_clear = max_pages_to_clear
        self.limit_step = limit_step
        self.max_limit = max_limit

    # Keys

    def posts_list_key(self, page: int, limit: int) -> str:
        return POST_LIST_KEY.format(page=page, limit=limit)

    def post_detail_key(self, post_id: int) -> str:
        return POST_DETAIL_KEY.format(post_id=post_id)

    def comments_list_key(self, post_id: int, page: int, limit: int) -> str:
        return COMMENT_LIST_KEY.format(post_id=post_id, page=page, limit=limit)

    def comment_detail_key(self, comment_id: int) -> str:
        return COMMENT_DETAIL_KEY.format(comment_id=comment_id)

    # Read-through

    async def remember(
        self, key: str, ttl: float, loader: Callable[[], Awaitable[Optional[T]]]
    ) -> Optional[T]:
        """Return the cached value for key, or load, store and return it.

        A loader result of None is returned but not stored.
        """
        try:
            cached = self.store.get(key, _MISSING)
        except Exception as exc:
            raise CacheError(f"Cache read failed for {key}") from exc

        if cached is not _MISSING:
            logger.debug("Cache hit: {}", key)
            return cached

        logger.debug("Cache miss: {}", key)
        value = await loader()
        if value is not None:
            try:
                self.store.set(key, value, ttl)
            except Exception as exc:
                raise CacheError(f"Cache write failed for {key}") from exc
        return value

    # Invalidation

    def _delete(self, key: str) -> None:
        try:
            self.store.delete(key)
        except Exception as exc:
            raise CacheError(f"Cache delete failed for {key}") from exc

    def _swept_pages_and_limits(self):
        for page in range(1, self.max_pages_to_clear + 1):
            for limit in range(self.limit_step, self.max_limit + 1, self.limit_step):
                yield page, limit

    def clear_posts_list(self) -> None:
        swept = 0
        for page, limit in self._swept_pages_and_limits():
            self._delete(self.posts_list_key(page, limit))
            swept += 1
        logger.debug("Swept {} post list keys", swept)

    def clear_post_detail(self, post_id: int) -> None:
        self._delete(self.post_detail_key(post_id))

    def clear_comments_list(self, post_id: int) -> None:
        swept = 0
        for page, limit in self._swept_pages_and_limits():
            self._delete(self.comments_list_key(post_id, page, limit))
            swept += 1
        logger.debug("Swept {} comment list keys for post {}", swept, post_id)

    def clear_comment_detail(self, comment_id: int) -> None:
        self._delete(self.comment_detail_key(comment_id))

    def clear_post_related(self, post_id: int) -> None:
        self.clear_post_detail(post_id)
        self.clear_posts_list()
        self.clear_comments_list(post_id)

    def clear_comment_related(self, comment_id: int, post_id: int) -> None:
        self.clear_comment_detail(comment_id)
        self.clear_comments_list(post_id)
