import logging
from datetime import timedelta

from modshield.core.results import Outcome
from modshield.database import keys
from modshield.database.record_store import RecordStore
from modshield.errors import StoreUnavailable

logger = logging.getLogger("modshield")

PROCESSED_TTL = timedelta(days=30)
RUMOR_MARK_TTL = timedelta(days=365)


class _ExpiringFlag:
    def __init__(self, store: RecordStore, ttl: timedelta):
        self.store = store
        self.ttl = ttl

    async def is_set(self, key: str) -> Outcome[bool]:
        try:
            return Outcome.ok(bool(await self.store.get(key)))
        except StoreUnavailable as e:
            logger.error(f"Failed to read mark {key}, treating as unset: {e}")
            return Outcome.fallback(False, e)

    async def set(self, key: str) -> Outcome[bool]:
        try:
            await self.store.set(key, "1", ttl=self.ttl)
        except StoreUnavailable as e:
            logger.error(f"Failed to write mark {key}: {e}")
            return Outcome.fallback(False, e)
        return Outcome.ok(True)

    async def clear(self, key: str) -> Outcome[bool]:
        try:
            await self.store.delete(key)
        except StoreUnavailable as e:
            logger.error(f"Failed to clear mark {key}: {e}")
            return Outcome.fallback(False, e)
        return Outcome.ok(True)


class ProcessedItemGuard:
    """
    Per-content-item "already handled" marker

    Marks expire after 30 days, after which the item can be evaluated again.
    """

    def __init__(self, store: RecordStore, ttl: timedelta = PROCESSED_TTL):
        self._flag = _ExpiringFlag(store, ttl)

    async def is_processed(self, item_id: str) -> Outcome[bool]:
        return await self._flag.is_set(keys.processed_item(item_id))

    async def mark_processed(self, item_id: str) -> Outcome[bool]:
        return await self._flag.set(keys.processed_item(item_id))


class RumorMarker:
    """Per-post marker for the one-time rumor notice, cleared when the flair goes away"""

    def __init__(self, store: RecordStore, ttl: timedelta = RUMOR_MARK_TTL):
        self._flag = _ExpiringFlag(store, ttl)

    async def is_marked(self, post_id: str) -> Outcome[bool]:
        return await self._flag.is_set(keys.rumor_comment(post_id))

    async def mark(self, post_id: str) -> Outcome[bool]:
        return await self._flag.set(keys.rumor_comment(post_id))

    async def clear(self, post_id: str) -> Outcome[bool]:
        return await self._flag.clear(keys.rumor_comment(post_id))
