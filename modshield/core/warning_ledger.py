import logging
from typing import Optional, Tuple

from modshield.core.results import Outcome
from modshield.database import keys
from modshield.database.models import UserWarningRecord, WarningCounts, WarningEntry
from modshield.database.record_store import RecordStore
from modshield.errors import MalformedRecord, StoreUnavailable
from modshield.utils.clock import Clock, days_to_ms, now_ms
from modshield.utils.locks import KeyedLock

logger = logging.getLogger("modshield")

WARNING_EXPIRY_DAYS = 90


class WarningLedger:
    """Per-user warning history"""

    def __init__(self, store: RecordStore, expiry_days: int = WARNING_EXPIRY_DAYS,
                 clock: Clock = now_ms, locks: Optional[KeyedLock] = None):
        """
        Args:
            store: record store holding warnings:{username} records
            expiry_days: retention window for active warnings
            clock: epoch-millisecond clock
            locks: per-key locks, shared with anything else writing the same records
        """
        self.store = store
        self.expiry_days = expiry_days
        self.clock = clock
        self.locks = locks or KeyedLock()

    def _cutoff(self) -> int:
        return self.clock() - days_to_ms(self.expiry_days)

    async def _load(self, username: str) -> Tuple[Optional[UserWarningRecord], Optional[MalformedRecord]]:
        """
        Read the stored record

        Returns:
            (record, parse_error) - record is None when absent or malformed

        Raises:
            StoreUnavailable: the read failed
        """
        raw = await self.store.get(keys.user_warnings(username))
        if raw is None:
            return None, None

        try:
            return UserWarningRecord.from_json(raw), None
        except MalformedRecord as e:
            logger.warning(f"Malformed warning record for u/{username}, treating as absent: {e}")
            return None, e

    async def _save(self, username: str, record: UserWarningRecord):
        await self.store.set(keys.user_warnings(username), record.to_json())

    async def add_warning(self, username: str, warning: WarningEntry) -> Outcome[UserWarningRecord]:
        """
        Append a warning and prune expired ones

        Args:
            username: user receiving the warning
            warning: the warning to record

        Returns:
            Outcome with the updated record. When the store fails, the value
            is an empty record and nothing was persisted.
        """
        async with self.hold(username):
            return await self.add_warning_locked(username, warning)

    async def add_warning_locked(self, username: str, warning: WarningEntry) -> Outcome[UserWarningRecord]:
        """add_warning for callers already holding the user's lock"""
        try:
            record, parse_error = await self._load(username)
            if record is None:
                record = UserWarningRecord()

            record.warnings.append(warning)
            record.total_warnings += 1
            record.prune(self._cutoff())

            await self._save(username, record)
        except StoreUnavailable as e:
            logger.error(f"Failed to add warning for u/{username}: {e}")
            return Outcome.fallback(UserWarningRecord(), e)

        logger.info(
            f"Warning added for u/{username}: reason={warning.reason}, "
            f"active={len(record.warnings)}, total={record.total_warnings}"
        )
        if parse_error is not None:
            return Outcome.fallback(record, parse_error)
        return Outcome.ok(record)

    async def get_user_warnings(self, username: str) -> Outcome[UserWarningRecord]:
        """Read the user's record with expired warnings pruned (not written back)"""
        try:
            record, parse_error = await self._load(username)
        except StoreUnavailable as e:
            logger.error(f"Failed to read warnings for u/{username}: {e}")
            return Outcome.fallback(UserWarningRecord(), e)

        if record is None:
            record = UserWarningRecord()
        record.prune(self._cutoff())

        if parse_error is not None:
            return Outcome.fallback(record, parse_error)
        return Outcome.ok(record)

    async def get_warning_counts(self, username: str) -> Outcome[WarningCounts]:
        """
        Count active and expired warnings

        expired is total minus active, floored at zero. It includes warnings
        removed on reinstatement as well as aged-out ones.
        """
        outcome = await self.get_user_warnings(username)
        record = outcome.value

        cutoff = self._cutoff()
        active = sum(1 for w in record.warnings if w.timestamp_ms > cutoff)
        counts = WarningCounts(
            active=active,
            expired=max(0, record.total_warnings - active),
            total=record.total_warnings,
        )
        return Outcome(value=counts, degraded=outcome.degraded, error=outcome.error)

    async def remove_warning(self, username: str, content_id: str) -> Outcome[int]:
        """
        Remove warnings triggered by a piece of content

        Used when a moderator reinstates the content. total_warnings is not
        decremented.

        Args:
            username: author of the content
            content_id: post or comment id

        Returns:
            Outcome with the number of warnings removed
        """
        try:
            async with self.hold(username):
                record, parse_error = await self._load(username)
                if record is None:
                    return Outcome.ok(0) if parse_error is None else Outcome.fallback(0, parse_error)

                before = len(record.warnings)
                record.warnings = [w for w in record.warnings if not w.references(content_id)]
                removed = before - len(record.warnings)

                await self._save(username, record)
        except StoreUnavailable as e:
            logger.error(f"Failed to remove warning {content_id} for u/{username}: {e}")
            return Outcome.fallback(0, e)

        if removed:
            logger.info(f"Removed {removed} warning(s) for u/{username} - content {content_id} was reinstated")
        return Outcome.ok(removed)

    async def set_ban_level(self, username: str, ban_level: int) -> Outcome[bool]:
        """
        Record the escalation tier applied to a user

        The stored level never decreases. Nothing is written when the user
        has no record.

        Returns:
            Outcome with True if the record was written
        """
        async with self.hold(username):
            return await self.set_ban_level_locked(username, ban_level)

    async def set_ban_level_locked(self, username: str, ban_level: int) -> Outcome[bool]:
        """set_ban_level for callers already holding the user's lock"""
        try:
            record, parse_error = await self._load(username)
            if record is None:
                logger.warning(f"No warning record for u/{username}, ban level {ban_level} not stored")
                return Outcome.ok(False) if parse_error is None else Outcome.fallback(False, parse_error)

            record.last_ban_level = max(record.last_ban_level, ban_level)
            await self._save(username, record)
        except StoreUnavailable as e:
            logger.error(f"Failed to update ban level for u/{username}: {e}")
            return Outcome.fallback(False, e)

        logger.info(f"Updated ban level for u/{username} to {record.last_ban_level}")
        return Outcome.ok(True)

    def hold(self, username: str):
        """Lock serializing every read-modify-write of one user's record"""
        return self.locks.hold(keys.user_warnings(username))
